from inkwell.repositories.article_repository import MongoArticleRepository
from inkwell.repositories.base import ArticleRepository, UserRepository
from inkwell.repositories.user_repository import SqlUserRepository

__all__ = [
    "ArticleRepository",
    "MongoArticleRepository",
    "SqlUserRepository",
    "UserRepository",
]
