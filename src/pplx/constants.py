"""Project-wide constants for pplx"""  # noqa: D415

# ==============================================================================
# Request Defaults
# ==============================================================================

DEFAULT_MODEL = "sonar"
DEFAULT_TEMPERATURE = 0.2
DEFAULT_TOP_K = 0
DEFAULT_TOP_P = 0.9
DEFAULT_FREQUENCY_PENALTY = 1.0
DEFAULT_PRESENCE_PENALTY = 0.0
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TIMEOUT_S = 10.0

DEFAULT_BASE_URL = "https://api.perplexity.ai"
API_KEY_ENV_VAR = "PPLX_API_KEY"

# ==============================================================================
# Enumerations
# ==============================================================================

SEARCH_RECENCY_VALUES = ("hour", "day", "week", "month", "year")
SEARCH_MODE_VALUES = ("web", "academic")
SEARCH_CONTEXT_SIZE_VALUES = ("low", "medium", "high")
REASONING_EFFORT_VALUES = ("low", "medium", "high")

# Unknown formats only warn; the API is the final judge.
KNOWN_IMAGE_FORMATS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "svg", "bmp"})

# ==============================================================================
# Model Families
# ==============================================================================

RESPONSE_FORMAT_MODEL_PREFIX = "sonar"
REASONING_EFFORT_MODEL_MARKER = "deep-research"

# ==============================================================================
# Dates
# ==============================================================================

DATE_LAYOUT = "MM/DD/YYYY"
