"""Shared search constants."""

# Highlight snippets are cut from the best matching passage
HIGHLIGHT_LENGTH = 300
HIGHLIGHT_ELLIPSIS = "..."

DEFAULT_TITLE = "Untitled Document"
DEFAULT_EMBEDDING_STATUS = "complete"

# Listing rows carry no similarity signal; they rank as perfect matches
LISTING_SIMILARITY = 1.0

# Filter values meaning "not applied"
FILTER_ALL = "all"

SORT_SIMILARITY = "similarity"
SORT_CREATED_AT = "created_at"
SORT_TITLE = "title"
SORT_MODES = (SORT_SIMILARITY, SORT_CREATED_AT, SORT_TITLE)

MAX_MATCH_COUNT = 100
