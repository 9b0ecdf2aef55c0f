from moviegroups.config.environment import AppConfig

VERSION = "0.1.0"
API_TITLE = "Movie Groups API"
API_DESCRIPTION = "API for movie reviews, user groups and favorite lists"

# max movie ids per favorites status call
STATUS_BATCH_LIMIT = 100

# group search tuning
SEARCH_SIMILARITY_THRESHOLD = 0.3
SEARCH_DEFAULT_LIMIT = 10
DISCOVERY_DEFAULT_LIMIT = 20
RECENT_REVIEWS_LIMIT = 20
