"""Cache TTL and key prefix constants."""

# Cache TTL constants (in seconds)
TTL_DEFAULT = 300  # 5 minutes - fallback for KeyValueStore.set
TTL_POST_LIST = 600  # 10 minutes - paginated listings
TTL_POST_DETAIL = 600  # 10 minutes - single post
TTL_COMMENT_LIST = 300  # 5 minutes - comments change more often
TTL_CATEGORY_LIST = 600  # 10 minutes - rarely changes
TTL_CHAT_RESPONSE = 3600  # 1 hour - AI answers to identical questions
TTL_CHAT_SESSION = 7200  # 2 hours - cached session history
TTL_CHAT_RATE = 60  # 1 minute - per-user chat message counter

# Bounds
CHAT_SESSION_MAX_MESSAGES = 20
CHAT_MAX_MESSAGES_PER_MINUTE = 10
CHAT_FINGERPRINT_LENGTH = 16

# Cache key prefixes
KEY_PREFIX_RESPONSE = "cache"  # cache:{path}?{query}
KEY_PREFIX_RATE_LIMIT = "rate_limit"  # rate_limit:{identity}:{window_start}
KEY_PREFIX_CHAT_RESPONSE = "chat:response"  # chat:response:{fingerprint}
KEY_PREFIX_CHAT_SESSION = "chat:session"  # chat:session:{user_id}:{session_id}
KEY_PREFIX_CHAT_RATE = "chat:rate"  # chat:rate:{user_id}

# Response headers
CACHE_STATUS_HEADER = "X-Cache"
