"""Memorial search engine.

Relevance-scored, faceted search over memorial pages with natural-language
date and location extraction, highlighting, autocomplete and search
analytics.
"""

__version__ = "1.0.0"
