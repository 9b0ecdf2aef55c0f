import logging
from collections import defaultdict
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from moviegroups.db.models import (
    GroupORM, GroupMemberORM, GroupTagORM, GenreORM, GroupThemeORM, FavoriteORM, UserORM
)
from moviegroups.domain.models import Group, Membership, MemberRole, Visibility, Genre, GroupTheme
from moviegroups.repositories.interface.group_repository import GroupRepository
from moviegroups.exceptions.repository import (
    EntityNotFoundException,
    DuplicateEntityException,
    RepositoryOperationException,
)

logger = logging.getLogger(__name__)

# visibility tiers that show up in discovery listings
LISTED_VISIBILITIES = (Visibility.PUBLIC.value, Visibility.PRIVATE.value)


class SQLAlchemyGroupRepo(GroupRepository):
    def __init__(self, db: Session):
        self.db = db

    def _member_count(self):
        return (
            select(func.count(GroupMemberORM.user_id))
            .where(
                GroupMemberORM.group_id == GroupORM.id,
                GroupMemberORM.role != MemberRole.PENDING.value
            )
            .correlate(GroupORM)
            .scalar_subquery()
            .label("member_count")
        )

    def _base_query(self):
        member_count = self._member_count()
        query = (
            self.db.query(GroupORM, UserORM.username.label("owner_name"), member_count)
            .join(UserORM, GroupORM.owner_id == UserORM.id)
        )
        return query, member_count

    def _genre_ids_for(self, group_ids: List[int]) -> Dict[int, List[int]]:
        if not group_ids:
            return {}
        rows = self.db.query(GroupTagORM.group_id, GroupTagORM.genre_id).filter(
            GroupTagORM.group_id.in_(group_ids)
        ).all()
        genre_ids = defaultdict(list)
        for group_id, genre_id in rows:
            genre_ids[group_id].append(genre_id)
        return genre_ids

    def _to_domain(self, group_orm: GroupORM, owner_name: str = None, member_count: int = 0,
                   genre_ids: List[int] = None) -> Group:
        return Group(
            id=group_orm.id,
            name=group_orm.name,
            owner_id=group_orm.owner_id,
            visibility=group_orm.visibility,
            description=group_orm.description,
            theme_id=group_orm.theme_id,
            poster_url=group_orm.poster_url,
            created_at=group_orm.created_at,
            owner_name=owner_name,
            member_count=member_count or 0,
            genre_ids=sorted(genre_ids or [])
        )

    def _rows_to_domain(self, rows) -> List[Group]:
        genre_ids = self._genre_ids_for([row[0].id for row in rows])
        return [
            self._to_domain(group_orm, owner_name, member_count, genre_ids.get(group_orm.id))
            for group_orm, owner_name, member_count in rows
        ]

    def _membership_to_domain(self, member_orm: GroupMemberORM, username: str = None) -> Membership:
        return Membership(
            group_id=member_orm.group_id,
            user_id=member_orm.user_id,
            role=member_orm.role,
            joined_at=member_orm.joined_at,
            username=username
        )

    def get_by_id(self, group_id: int) -> Optional[Group]:
        try:
            query, _ = self._base_query()
            row = query.filter(GroupORM.id == group_id).first()
            if not row:
                return None
            return self._rows_to_domain([row])[0]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get group by ID: {str(e)}")

    def get_details(self, group_id: int) -> Optional[Group]:
        """Group with its member roster and genre tags, read in one transaction."""
        try:
            group = self.get_by_id(group_id)
            if group is None:
                return None

            group.members = self.get_members(group_id)

            genres = self.db.query(GenreORM).join(
                GroupTagORM, GroupTagORM.genre_id == GenreORM.id
            ).filter(GroupTagORM.group_id == group_id).order_by(GenreORM.name.asc()).all()
            group.genres = [Genre(id=g.id, name=g.name) for g in genres]
            return group
        except RepositoryOperationException:
            raise
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get group details: {str(e)}")

    def get_by_name(self, name: str) -> Optional[Group]:
        try:
            group_orm = self.db.query(GroupORM).filter(
                func.lower(GroupORM.name) == name.lower()
            ).first()
            return self._to_domain(group_orm) if group_orm else None
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get group by name: {str(e)}")

    def create_with_owner(self, group: Group, tag_ids: List[int]) -> Group:
        """Insert the group, its owner membership row and its tags as one unit."""
        now = datetime.now()
        try:
            group_orm = GroupORM(
                name=group.name,
                owner_id=group.owner_id,
                description=group.description,
                visibility=group.visibility.value,
                theme_id=group.theme_id,
                poster_url=group.poster_url,
                created_at=now
            )
            self.db.add(group_orm)
            self.db.flush()

            self.db.add(GroupMemberORM(
                group_id=group_orm.id,
                user_id=group.owner_id,
                role=MemberRole.OWNER.value,
                joined_at=now
            ))
            for genre_id in tag_ids:
                self.db.add(GroupTagORM(group_id=group_orm.id, genre_id=genre_id))

            self.db.commit()
            group_id = group_orm.id
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateEntityException(f"Group could not be created: {str(e.orig)}")
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to create group: {str(e)}")

        logger.info(f"Created group {group_id} with owner {group.owner_id} and {len(tag_ids)} tags")
        return self.get_by_id(group_id)

    def update_details(self, group_id: int, changes: Dict, tag_ids: Optional[List[int]]) -> Group:
        """Apply column changes and, when given, replace the tag set. Both or neither."""
        try:
            group_orm = self.db.get(GroupORM, group_id)
            if not group_orm:
                raise EntityNotFoundException(f"Group {group_id} not found")

            for field, value in changes.items():
                setattr(group_orm, field, value.value if isinstance(value, Enum) else value)

            if tag_ids is not None:
                self.db.query(GroupTagORM).filter(GroupTagORM.group_id == group_id).delete()
                for genre_id in tag_ids:
                    self.db.add(GroupTagORM(group_id=group_id, genre_id=genre_id))

            self.db.commit()
        except EntityNotFoundException:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateEntityException(f"Group could not be updated: {str(e.orig)}")
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to update group: {str(e)}")

        return self.get_by_id(group_id)

    def delete_cascade(self, group_id: int) -> Dict[str, int]:
        """Remove tags, group favorites, memberships and the group row as one unit."""
        try:
            deleted_tags = self.db.query(GroupTagORM).filter(
                GroupTagORM.group_id == group_id
            ).delete()
            deleted_favorites = self.db.query(FavoriteORM).filter(
                FavoriteORM.group_id == group_id
            ).delete()
            deleted_members = self.db.query(GroupMemberORM).filter(
                GroupMemberORM.group_id == group_id
            ).delete()
            deleted_groups = self.db.query(GroupORM).filter(
                GroupORM.id == group_id
            ).delete()

            if deleted_groups == 0:
                raise EntityNotFoundException(f"Group {group_id} not found")

            self.db.commit()
            self.db.expire_all()
            return {
                "deleted_tags": deleted_tags,
                "deleted_members": deleted_members,
                "deleted_favorites": deleted_favorites
            }
        except EntityNotFoundException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to delete group: {str(e)}")

    def get_membership(self, group_id: int, user_id: int) -> Optional[Membership]:
        try:
            row = self.db.query(GroupMemberORM, UserORM.username).join(
                UserORM, GroupMemberORM.user_id == UserORM.id
            ).filter(
                GroupMemberORM.group_id == group_id,
                GroupMemberORM.user_id == user_id
            ).first()
            if not row:
                return None
            return self._membership_to_domain(row[0], row[1])
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get membership: {str(e)}")

    def add_membership(self, membership: Membership) -> Membership:
        duplicate_message = f"User {membership.user_id} already has a membership row in group {membership.group_id}"
        try:
            if self.db.get(GroupMemberORM, (membership.group_id, membership.user_id)) is not None:
                raise DuplicateEntityException(duplicate_message)

            member_orm = GroupMemberORM(
                group_id=membership.group_id,
                user_id=membership.user_id,
                role=membership.role.value,
                joined_at=membership.joined_at or datetime.now()
            )
            self.db.add(member_orm)
            self.db.commit()
        except DuplicateEntityException:
            raise
        except IntegrityError:
            self.db.rollback()
            raise DuplicateEntityException(duplicate_message)
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to add membership: {str(e)}")

        return self.get_membership(membership.group_id, membership.user_id)

    def update_member_role(self, group_id: int, user_id: int, role: MemberRole) -> Membership:
        try:
            member_orm = self.db.get(GroupMemberORM, (group_id, user_id))
            if not member_orm:
                raise EntityNotFoundException(f"User {user_id} is not a member of group {group_id}")

            member_orm.role = MemberRole(role).value
            self.db.commit()
        except EntityNotFoundException:
            raise
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to update member role: {str(e)}")

        return self.get_membership(group_id, user_id)

    def remove_membership(self, group_id: int, user_id: int) -> bool:
        try:
            deleted = self.db.query(GroupMemberORM).filter(
                GroupMemberORM.group_id == group_id,
                GroupMemberORM.user_id == user_id
            ).delete()
            self.db.commit()
            self.db.expire_all()
            return deleted > 0
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to remove membership: {str(e)}")

    def get_members(self, group_id: int, include_pending: bool = True) -> List[Membership]:
        try:
            query = self.db.query(GroupMemberORM, UserORM.username).join(
                UserORM, GroupMemberORM.user_id == UserORM.id
            ).filter(GroupMemberORM.group_id == group_id)
            if not include_pending:
                query = query.filter(GroupMemberORM.role != MemberRole.PENDING.value)
            rows = query.order_by(GroupMemberORM.joined_at.desc(), GroupMemberORM.user_id.asc()).all()
            return [self._membership_to_domain(m, username) for m, username in rows]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get group members: {str(e)}")

    def get_pending(self, group_id: int) -> List[Membership]:
        try:
            rows = self.db.query(GroupMemberORM, UserORM.username).join(
                UserORM, GroupMemberORM.user_id == UserORM.id
            ).filter(
                GroupMemberORM.group_id == group_id,
                GroupMemberORM.role == MemberRole.PENDING.value
            ).order_by(GroupMemberORM.joined_at.asc()).all()
            return [self._membership_to_domain(m, username) for m, username in rows]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get pending requests: {str(e)}")

    def get_public_groups(self) -> List[Group]:
        try:
            query, _ = self._base_query()
            rows = query.filter(GroupORM.visibility == Visibility.PUBLIC.value).all()
            return self._rows_to_domain(rows)
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get public groups: {str(e)}")

    def get_by_genres(self, genre_ids: List[int], match_type: str, limit: int) -> List[Group]:
        try:
            query, _ = self._base_query()
            query = query.filter(GroupORM.visibility.in_(LISTED_VISIBILITIES))

            if genre_ids:
                tagged = select(GroupTagORM.group_id).where(GroupTagORM.genre_id.in_(genre_ids))
                if match_type == "all":
                    tagged = tagged.group_by(GroupTagORM.group_id).having(
                        func.count(func.distinct(GroupTagORM.genre_id)) == len(set(genre_ids))
                    )
                query = query.filter(GroupORM.id.in_(tagged))

            rows = query.order_by(GroupORM.created_at.desc(), GroupORM.id.desc()).limit(limit).all()
            return self._rows_to_domain(rows)
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get groups by genre tags: {str(e)}")

    def get_popular(self, limit: int) -> List[Group]:
        try:
            query, member_count = self._base_query()
            rows = query.filter(
                GroupORM.visibility.in_(LISTED_VISIBILITIES)
            ).order_by(
                member_count.desc(), GroupORM.created_at.desc(), GroupORM.id.desc()
            ).limit(limit).all()
            return self._rows_to_domain(rows)
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get popular groups: {str(e)}")

    def get_user_groups(self, user_id: int) -> List[Tuple[Group, MemberRole]]:
        try:
            role_order = case(
                (GroupMemberORM.role == MemberRole.OWNER.value, 0),
                (GroupMemberORM.role == MemberRole.MODERATOR.value, 1),
                else_=2
            )
            group_ids_roles = self.db.query(GroupMemberORM.group_id, GroupMemberORM.role).filter(
                GroupMemberORM.user_id == user_id,
                GroupMemberORM.role != MemberRole.PENDING.value
            ).order_by(role_order, GroupMemberORM.joined_at.desc()).all()
            if not group_ids_roles:
                return []

            query, _ = self._base_query()
            rows = query.filter(GroupORM.id.in_([gid for gid, _ in group_ids_roles])).all()
            groups = {group.id: group for group in self._rows_to_domain(rows)}
            return [
                (groups[group_id], MemberRole(role))
                for group_id, role in group_ids_roles
                if group_id in groups
            ]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get user groups: {str(e)}")

    def get_existing_genre_ids(self, genre_ids: List[int]) -> List[int]:
        if not genre_ids:
            return []
        try:
            rows = self.db.query(GenreORM.id).filter(GenreORM.id.in_(genre_ids)).all()
            return [row[0] for row in rows]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to check genres: {str(e)}")

    def theme_exists(self, theme_id: int) -> bool:
        try:
            return self.db.get(GroupThemeORM, theme_id) is not None
        except Exception as e:
            raise RepositoryOperationException(f"Failed to check theme: {str(e)}")

    def get_all_genres(self) -> List[Genre]:
        try:
            return [Genre(id=g.id, name=g.name) for g in self.db.query(GenreORM).order_by(GenreORM.id.asc()).all()]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get genres: {str(e)}")

    def get_all_themes(self) -> List[GroupTheme]:
        try:
            themes = self.db.query(GroupThemeORM).order_by(GroupThemeORM.name.asc()).all()
            return [GroupTheme(id=t.id, name=t.name, theme=t.theme) for t in themes]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to get group themes: {str(e)}")
