"""Limits and placeholder tokens shared across the loader."""

PROGRESS_INTERVAL = 10
"""Emit a progress snapshot every this many processed records."""

MAX_DISCOVERY_DEPTH = 10
"""Maximum nesting depth walked by path discovery."""

SAMPLE_MAX_LENGTH = 50
"""Discovery samples longer than this are truncated."""

SAMPLE_TRUNCATED_LENGTH = 47
"""Characters kept from a truncated sample before the ellipsis."""

MAX_IDENTIFIER_LENGTH = 255
"""Longest table or column name accepted before catalog lookup."""

DYNAMIC_MARKER = "{{DYNAMIC}}"
"""Override literal that requests a synthetic value."""

INDEX_PLACEHOLDER = "{{INDEX}}"
UUID_PLACEHOLDER = "{{UUID}}"
TIMESTAMP_PLACEHOLDER = "{{TIMESTAMP}}"

ARRAY_MARKER = "[]"
"""Segment suffix that iterates an array."""
