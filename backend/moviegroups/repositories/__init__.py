from moviegroups.repositories.interface.user_repository import UserRepository
from moviegroups.repositories.interface.movie_repository import MovieRepository
from moviegroups.repositories.interface.group_repository import GroupRepository
from moviegroups.repositories.interface.favorite_repository import FavoriteRepository
from moviegroups.repositories.interface.review_repository import ReviewRepository
from moviegroups.repositories.implementation.sql_alchemy_user_repo import SQLAlchemyUserRepo
from moviegroups.repositories.implementation.sql_alchemy_movie_repo import SQLAlchemyMovieRepo
from moviegroups.repositories.implementation.sql_alchemy_group_repo import SQLAlchemyGroupRepo
from moviegroups.repositories.implementation.sql_alchemy_favorite_repo import SQLAlchemyFavoriteRepo
from moviegroups.repositories.implementation.sql_alchemy_review_repo import SQLAlchemyReviewRepo
