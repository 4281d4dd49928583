"""Tag category lookup."""

from .categories import TagCategoryDatabase, TagCategoryResolver, heuristic_category

__all__ = ["TagCategoryDatabase", "TagCategoryResolver", "heuristic_category"]
