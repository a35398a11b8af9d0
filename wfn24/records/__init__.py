"""
Record models: one per table, all built on RecordModel.
"""
from .base import PageResult, Record, RecordModel, RecordSchema
from .articles import ArticleModel
from .categories import CategoryModel
from .leagues import LeagueModel
from .matches import MatchModel
from .players import PlayerModel
from .teams import TeamModel
from .users import UserModel, hash_password, verify_password

__all__ = [
    # Generic model
    "PageResult",
    "Record",
    "RecordModel",
    "RecordSchema",
    # Entities
    "ArticleModel",
    "CategoryModel",
    "LeagueModel",
    "MatchModel",
    "PlayerModel",
    "TeamModel",
    "UserModel",
    # Credentials
    "hash_password",
    "verify_password",
]
