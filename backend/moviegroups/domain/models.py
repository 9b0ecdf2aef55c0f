from datetime import datetime
from enum import Enum
from typing import Optional, List


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    CLOSED = "closed"


class MemberRole(str, Enum):
    OWNER = "owner"
    MODERATOR = "moderator"
    MEMBER = "member"
    PENDING = "pending"


class FavoriteType(int, Enum):
    WATCHLIST = 1
    FAVORITES = 2
    GROUP_FAVORITES = 3


def parse_movie_id(value) -> str:
    """Normalise a provider movie id: a positive integer, stored as its decimal string."""
    if isinstance(value, bool):
        raise ValueError('movie_id must be a positive integer')
    text = str(value).strip()
    if not text:
        raise ValueError('movie_id is required')
    if not (text.isascii() and text.isdigit()) or int(text) <= 0:
        raise ValueError('movie_id must be a positive integer')
    return str(int(text))


class User:
    def __init__(
        self,
        username: str,
        email: str,
        hashed_password: str,
        id: Optional[int] = None,
        is_active: bool = True,
        is_admin: bool = False,
        created_at: datetime = None
    ):
        self.username = username
        self.email = email
        self.hashed_password = hashed_password
        self.id = id
        self.is_active = is_active
        self.is_admin = is_admin
        self.created_at = created_at

class Movie:
    def __init__(
        self,
        id: str,
        title: str,
        original_title: Optional[str] = None,
        release_year: Optional[int] = None,
        poster_path: Optional[str] = None
    ):
        self.id = id
        self.title = title
        self.original_title = original_title
        self.release_year = release_year
        self.poster_path = poster_path

class Genre:
    def __init__(self, id: int, name: str):
        self.id = id
        self.name = name

class GroupTheme:
    def __init__(self, id: int, name: str, theme: str = "default"):
        self.id = id
        self.name = name
        self.theme = theme

class Membership:
    def __init__(
        self,
        group_id: int,
        user_id: int,
        role: MemberRole,
        joined_at: datetime = None,
        username: Optional[str] = None
    ):
        self.group_id = group_id
        self.user_id = user_id
        self.role = MemberRole(role)
        self.joined_at = joined_at
        self.username = username

    @property
    def is_pending(self) -> bool:
        return self.role == MemberRole.PENDING

class Group:
    def __init__(
        self,
        name: str,
        owner_id: int,
        visibility: Visibility = Visibility.PUBLIC,
        description: str = "",
        id: Optional[int] = None,
        theme_id: Optional[int] = None,
        poster_url: Optional[str] = None,
        created_at: datetime = None,
        owner_name: Optional[str] = None,
        member_count: int = 0,
        genre_ids: Optional[List[int]] = None,
        members: Optional[List[Membership]] = None,
        genres: Optional[List[Genre]] = None
    ):
        self.name = name
        self.owner_id = owner_id
        self.visibility = Visibility(visibility)
        self.description = description
        self.id = id
        self.theme_id = theme_id
        self.poster_url = poster_url
        self.created_at = created_at
        self.owner_name = owner_name
        self.member_count = member_count
        self.genre_ids = genre_ids or []
        self.members = members or []
        self.genres = genres or []

class Favorite:
    def __init__(
        self,
        movie_id: str,
        type: FavoriteType,
        user_id: Optional[int] = None,
        group_id: Optional[int] = None,
        added_by: Optional[int] = None,
        created_at: datetime = None,
        id: Optional[int] = None,
        movie: Optional[Movie] = None
    ):
        self.movie_id = movie_id
        self.type = FavoriteType(type)
        self.user_id = user_id
        self.group_id = group_id
        self.added_by = added_by
        self.created_at = created_at
        self.id = id
        self.movie = movie

class Review:
    def __init__(
        self,
        movie_id: str,
        user_id: int,
        rating: int,
        content: Optional[str] = None,
        id: Optional[int] = None,
        username: Optional[str] = None,
        likes: int = 0,
        dislikes: int = 0,
        created_at: datetime = None,
        updated_at: datetime = None
    ):
        self.movie_id = movie_id
        self.user_id = user_id
        self.rating = rating
        self.content = content
        self.id = id
        self.username = username
        self.likes = likes
        self.dislikes = dislikes
        self.created_at = created_at
        self.updated_at = updated_at
