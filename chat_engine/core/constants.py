"""Engine-wide constants.

This module centralizes magic numbers and fixed identifiers that are used
across multiple modules. For deployment-specific configuration, see
config.py.
"""

# =============================================================================
# Payload Keys
# =============================================================================

# Key holding the ciphertext once a payload has been encrypted
ENCRYPTED_PAYLOAD_KEY: str = "_encrypted"

# Driver tag for the identity (JSON only) encryption driver
NULL_DRIVER_NAME: str = "none"

# =============================================================================
# Pipeline Pipe Identifiers
# =============================================================================

PIPE_SANITIZE_CONTENT: str = "sanitize_content"
PIPE_DETECT_MENTIONS: str = "detect_mentions"
PIPE_DETECT_URLS: str = "detect_urls"
PIPE_VALIDATE_MEDIA_URLS: str = "validate_media_urls"
PIPE_FILTER_PROFANITY: str = "filter_profanity"
PIPE_ENCRYPT_PAYLOAD: str = "encrypt_payload"

# =============================================================================
# Content Rules
# =============================================================================

# HTML tags that survive sanitization (before escaping)
ALLOWED_HTML_TAGS: tuple[str, ...] = ("b", "i", "u", "s", "em", "strong", "code", "pre", "a")

# Text payload keys touched by sanitization and profanity filtering
TEXT_PAYLOAD_KEYS: tuple[str, ...] = ("content", "caption")

ALLOWED_URL_SCHEMES: tuple[str, ...] = ("http", "https")

# =============================================================================
# Participant Security
# =============================================================================

# Digits in a verification security code (12 groups of 5)
SECURITY_CODE_LENGTH: int = 60
SECURITY_CODE_GROUP_SIZE: int = 5
