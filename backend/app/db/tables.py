"""
Single source of truth for database tables that exist after migrations (001).

Use these names when writing raw SQL (e.g. TRUNCATE).
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "sources",
    "posts",
    "post_tags",
    "keywords",
    "post_keywords",
    "feeds",
    "feed_tags",
    "feed_sources",
    "views",
    "hidden_posts",
    "bookmarks",
    "users",
    "comments",
)
