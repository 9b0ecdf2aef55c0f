import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Set

from sqlalchemy import or_, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from moviegroups.db.models import FavoriteORM, GroupORM, GroupMemberORM, MovieORM
from moviegroups.domain.models import Favorite, FavoriteType, MemberRole, Movie, Visibility
from moviegroups.repositories.interface.favorite_repository import FavoriteRepository
from moviegroups.exceptions.repository import (
    EntityNotFoundException,
    InvalidEntityDataException,
    RepositoryOperationException,
)

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class SQLAlchemyFavoriteRepo(FavoriteRepository):
    def __init__(self, db: Session):
        self.db = db

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect not in _INSERTS:
            raise RepositoryOperationException(f"Upsert is not supported on the {dialect} dialect")
        return _INSERTS[dialect]

    def _to_domain(self, favorite_orm: FavoriteORM, movie_orm: MovieORM = None) -> Favorite:
        movie = None
        if movie_orm is not None:
            movie = Movie(
                id=movie_orm.id,
                title=movie_orm.title,
                original_title=movie_orm.original_title,
                release_year=movie_orm.release_year,
                poster_path=movie_orm.poster_path
            )
        return Favorite(
            id=favorite_orm.id,
            movie_id=favorite_orm.movie_id,
            type=favorite_orm.type,
            user_id=favorite_orm.user_id,
            group_id=favorite_orm.group_id,
            added_by=favorite_orm.added_by,
            created_at=favorite_orm.created_at,
            movie=movie
        )

    def _scoped(self, query, movie_id: str, favorite_type: FavoriteType,
                user_id: Optional[int], group_id: Optional[int]):
        query = query.filter(FavoriteORM.movie_id == movie_id, FavoriteORM.type == int(favorite_type))
        if favorite_type == FavoriteType.GROUP_FAVORITES:
            return query.filter(FavoriteORM.group_id == group_id)
        return query.filter(FavoriteORM.user_id == user_id, FavoriteORM.group_id.is_(None))

    def upsert(self, favorite: Favorite) -> Favorite:
        """Insert a list entry, or refresh the timestamp of the one already there."""
        if favorite.type == FavoriteType.GROUP_FAVORITES:
            if favorite.group_id is None:
                raise InvalidEntityDataException("Group list entries need a group_id")
            values = {"user_id": None, "group_id": favorite.group_id, "added_by": favorite.added_by}
            conflict_target = ["group_id", "movie_id"]
            conflict_where = text("group_id IS NOT NULL")
        else:
            if favorite.user_id is None:
                raise InvalidEntityDataException("Personal list entries need a user_id")
            values = {"user_id": favorite.user_id, "group_id": None, "added_by": None}
            conflict_target = ["user_id", "movie_id", "type"]
            conflict_where = text("group_id IS NULL")

        try:
            stmt = self._insert()(FavoriteORM).values(
                movie_id=favorite.movie_id,
                type=int(favorite.type),
                created_at=datetime.now(),
                **values
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=conflict_target,
                index_where=conflict_where,
                set_={"created_at": stmt.excluded.created_at}
            )
            self.db.execute(stmt)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise InvalidEntityDataException(f"Favorite references missing data: {str(e.orig)}")
        except RepositoryOperationException:
            raise
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to add favorite: {str(e)}")

        stored = self.get(favorite.movie_id, favorite.type, favorite.user_id, favorite.group_id)
        if stored is None:
            raise RepositoryOperationException("Favorite vanished after upsert")
        return stored

    def get(self, movie_id: str, favorite_type: FavoriteType,
            user_id: Optional[int] = None, group_id: Optional[int] = None) -> Optional[Favorite]:
        try:
            query = self.db.query(FavoriteORM, MovieORM).join(MovieORM, FavoriteORM.movie_id == MovieORM.id)
            row = self._scoped(query, movie_id, FavoriteType(favorite_type), user_id, group_id).first()
            return self._to_domain(*row) if row else None
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get favorite: {str(e)}")

    def delete(self, movie_id: str, favorite_type: FavoriteType,
               user_id: Optional[int] = None, group_id: Optional[int] = None) -> bool:
        try:
            query = self._scoped(self.db.query(FavoriteORM), movie_id, FavoriteType(favorite_type), user_id, group_id)
            deleted = query.delete()
            if deleted == 0:
                raise EntityNotFoundException(f"Movie {movie_id} is not on this list")
            self.db.commit()
            return True
        except EntityNotFoundException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to remove favorite: {str(e)}")

    def list_for_user(self, user_id: int, favorite_type: FavoriteType) -> List[Favorite]:
        try:
            rows = self.db.query(FavoriteORM, MovieORM).join(
                MovieORM, FavoriteORM.movie_id == MovieORM.id
            ).filter(
                FavoriteORM.user_id == user_id,
                FavoriteORM.group_id.is_(None),
                FavoriteORM.type == int(favorite_type)
            ).order_by(FavoriteORM.created_at.desc(), FavoriteORM.id.desc()).all()
            return [self._to_domain(f, m) for f, m in rows]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to list user favorites: {str(e)}")

    def list_for_group(self, group_id: int) -> List[Favorite]:
        try:
            rows = self.db.query(FavoriteORM, MovieORM).join(
                MovieORM, FavoriteORM.movie_id == MovieORM.id
            ).filter(
                FavoriteORM.group_id == group_id,
                FavoriteORM.type == int(FavoriteType.GROUP_FAVORITES)
            ).order_by(FavoriteORM.created_at.desc(), FavoriteORM.id.desc()).all()
            return [self._to_domain(f, m) for f, m in rows]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to list group favorites: {str(e)}")

    def personal_types(self, user_id: int, movie_ids: List[str]) -> Dict[str, Set[int]]:
        """Which personal lists (watchlist, favorites) hold each of the given movies."""
        if not movie_ids:
            return {}
        try:
            rows = self.db.query(FavoriteORM.movie_id, FavoriteORM.type).filter(
                FavoriteORM.user_id == user_id,
                FavoriteORM.group_id.is_(None),
                FavoriteORM.movie_id.in_(movie_ids)
            ).all()
            types = defaultdict(set)
            for movie_id, favorite_type in rows:
                types[movie_id].add(favorite_type)
            return dict(types)
        except Exception as e:
            raise RepositoryOperationException(f"Failed to read favorite status: {str(e)}")

    def visible_groups_for_movies(self, user_id: int, movie_ids: List[str]) -> Dict[str, List[dict]]:
        """Group lists holding each movie, limited to public groups and groups the user belongs to."""
        if not movie_ids:
            return {}
        try:
            member_of = select(GroupMemberORM.group_id).where(
                GroupMemberORM.user_id == user_id,
                GroupMemberORM.role != MemberRole.PENDING.value
            )
            rows = self.db.query(FavoriteORM.movie_id, GroupORM.id, GroupORM.name).join(
                GroupORM, FavoriteORM.group_id == GroupORM.id
            ).filter(
                FavoriteORM.movie_id.in_(movie_ids),
                FavoriteORM.type == int(FavoriteType.GROUP_FAVORITES),
                or_(
                    GroupORM.visibility == Visibility.PUBLIC.value,
                    GroupORM.owner_id == user_id,
                    GroupORM.id.in_(member_of)
                )
            ).order_by(GroupORM.name.asc()).all()
            groups = defaultdict(list)
            for movie_id, group_id, name in rows:
                groups[movie_id].append({"id": group_id, "name": name})
            return dict(groups)
        except Exception as e:
            raise RepositoryOperationException(f"Failed to read group favorite status: {str(e)}")
