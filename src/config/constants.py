DEFAULT_REPLACEMENT = "[FILTERED]"

# Content extraction
MIN_MAIN_CONTENT_LENGTH = 100
MAX_CONTENT_LENGTH_WARNING = 1_000_000
MAX_DELAY_WARNING_MS = 60_000

MAIN_CONTENT_SELECTORS: list[str] = [
    "main",
    "article",
    "[role='main']",
    ".content",
    ".main-content",
    ".post-content",
    ".entry-content",
    "#content",
    ".container",
]

NOISE_SELECTORS = "script, style, noscript, iframe, object, embed"

# Memory backends
DEFAULT_COLLECTION = "browser-context"
DEFAULT_NAMESPACE = "default"
ZEP_SESSION_PREFIX = "browser-context-"
MEM0_MAX_ID_LENGTH = 100

DEFAULT_VECTOR_PROVIDER = "pinecone"
DEFAULT_VECTOR_DIMENSION = 1536
DEFAULT_DISTANCE_METRIC = "cosine"
DISTANCE_METRICS = ("cosine", "euclidean", "dotproduct")
