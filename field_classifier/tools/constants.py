"""Constants for field classification."""

# Signal source identifiers
SOURCE_STRUCTURED_DATA = "structured-data"
SOURCE_SEMANTIC_MAPPING = "semantic-mapping"
SOURCE_QUESTION_EXTRACTION = "question-extraction"
SOURCE_KEYWORD_FALLBACK = "keyword-fallback"
SOURCE_SECTION_CONTEXT = "section-context"

# Aggregation (0.0 to 1.0)
SOURCE_WEIGHTS = {
    SOURCE_STRUCTURED_DATA: 1.2,
    SOURCE_SEMANTIC_MAPPING: 1.0,
    SOURCE_QUESTION_EXTRACTION: 1.0,
    SOURCE_KEYWORD_FALLBACK: 1.0,
    SOURCE_SECTION_CONTEXT: 0.6,
}
MIN_CONFIDENCE = 0.60
MAX_CONFIDENCE = 0.95
AGREEMENT_STEP = 0.05
AGREEMENT_CAP = 0.10
CONTEXT_BOOST = 0.10

# Semantic matcher confidences
EXACT_PHRASE_CONFIDENCE = 0.85
CONTAINS_PHRASE_CONFIDENCE = 0.80
PARTIAL_PHRASE_CONFIDENCE = 0.75
QUESTION_PHRASE_CAP = 0.80
QUESTION_KEYWORD_CAP = 0.75
KEYWORD_CONFIDENCE = 0.60
MIN_PARTIAL_LABEL_LENGTH = 4
FUZZY_RATIO_THRESHOLD = 90  # thefuzz scale, 0-100

# Structured data
STRUCTURED_BASE_CONFIDENCE = 0.80
STRUCTURED_MAX_CONFIDENCE = 0.90

# Section context
SECTION_MIN_CONFIDENCE = 0.50
SECTION_MAX_CONFIDENCE = 0.60
SECTION_BASE_CONFIDENCE = 0.40
SECTION_KEYWORD_STEP = 0.10
MAX_HEADER_DISTANCE = 5
MAX_HEADER_LENGTH = 100

# Locale detection
LOCALE_CONFIDENCE_DECLARED = 1.0
LOCALE_CONFIDENCE_META = 0.9
LOCALE_CONFIDENCE_DOMAIN = 0.7
LOCALE_CONFIDENCE_CONTENT = 0.5
LOW_LOCALE_CONFIDENCE = 0.7
MIN_CONTENT_HITS = 2
CONTENT_SAMPLE_CHARS = 5000
DEFAULT_LOCALE = "en"

# Label extraction
MAX_ANCESTOR_WALK = 3
MAX_CAPTION_LENGTH = 100

# Cache TTLs (seconds)
VISIBILITY_TTL = 0.1
COMPUTED_STYLE_TTL = 0.1
LABEL_TEXT_TTL = 5.0
SIGNALS_TTL = 5.0
