"""Constants for the signals module."""

# Separator between signal type and value in a feature key
KEY_SEPARATOR = ":"

# Separator between subject and concept keys inside a context value
CONTEXT_SEPARATOR = "|"

# Separator used when rendering context keys for display
LABEL_SEPARATOR = " · "

# Contexts kept per item, in dictionary iteration order
MAX_CONTEXTS_PER_ITEM = 2

# Characters of body content included in the match haystack
CONTENT_EXCERPT_CHARS = 2000
