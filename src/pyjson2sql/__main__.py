from pyjson2sql.cli import app

app(prog_name="pyjson2sql")
