from inkwell.models.article import Article, ArticleFilter
from inkwell.models.user import User

__all__ = ["Article", "ArticleFilter", "User"]
