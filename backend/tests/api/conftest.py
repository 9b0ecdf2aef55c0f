import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from moviegroups.config import AppConfig
from moviegroups.clients.tmdb_client import TMDBClient
from moviegroups.db.database import Database
from moviegroups.db.models import UserORM, GenreORM, GroupThemeORM
from moviegroups.main import create_app
from moviegroups.service.auth_service import AuthService, pwd_context

PASSWORD = "Password123"
PASSWORD_HASH = pwd_context.hash(PASSWORD)

TMDB_MOVIES = {
    "550": {"id": 550, "title": "Fight Club", "original_title": "Fight Club",
            "release_date": "1999-10-15", "poster_path": "/fight.jpg"},
    "13": {"id": 13, "title": "Forrest Gump", "original_title": "Forrest Gump",
           "release_date": "1994-06-23", "poster_path": "/gump.jpg"},
    "680": {"id": 680, "title": "Pulp Fiction", "original_title": "Pulp Fiction",
            "release_date": "1994-09-10", "poster_path": "/pulp.jpg"},
}

USERS = {
    "owner": 1,
    "moderator": 2,
    "moderator2": 3,
    "member": 4,
    "outsider": 5,
    "admin": 6,
}


class ApiUser:
    def __init__(self, id: int, username: str, token: str):
        self.id = id
        self.username = username
        self.headers = {"Authorization": f"Bearer {token}"}


@pytest.fixture
def config(tmp_path):
    return AppConfig(jwt_secret_key="test-secret", tmdb_api_key="test-key", log_dir=tmp_path / "logs")


@pytest.fixture
def database():
    database = Database("sqlite:///:memory:", poolclass=StaticPool)
    yield database
    database.dispose()


@pytest.fixture
def tmdb_calls():
    """Paths the fake metadata provider was asked for."""
    return []


@pytest.fixture
def tmdb_client(tmdb_calls):
    def handler(request: httpx.Request) -> httpx.Response:
        tmdb_calls.append(request.url.path)
        movie_id = request.url.path.rsplit("/", 1)[-1]
        if movie_id in TMDB_MOVIES:
            return httpx.Response(200, json=TMDB_MOVIES[movie_id])
        return httpx.Response(404, json={"status_code": 34, "status_message": "Not found"})

    client = TMDBClient("test-key", base_url="https://tmdb.test/3", transport=httpx.MockTransport(handler))
    yield client
    client.close()


@pytest.fixture
def client(config, database, tmdb_client):
    app = create_app(config=config, database=database, tmdb_client=tmdb_client)

    with database.session() as db:
        db.add_all([
            GenreORM(id=28, name="Action"),
            GenreORM(id=35, name="Comedy"),
            GenreORM(id=18, name="Drama"),
            GroupThemeORM(id=1, name="Midnight", theme="dark"),
        ])
        db.commit()

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def users(client, database, config):
    """One user per role used across the API tests, each with a valid bearer token."""
    with database.session() as db:
        for username, user_id in USERS.items():
            db.add(UserORM(
                id=user_id,
                username=username,
                email=f"{username}@test.com",
                hashed_password=PASSWORD_HASH,
                is_active=True,
                is_admin=username == "admin"
            ))
        db.commit()

    auth_service = AuthService(None, config)
    return {
        username: ApiUser(user_id, username, auth_service.create_access_token({"sub": str(user_id)}))
        for username, user_id in USERS.items()
    }


@pytest.fixture
def create_group(client, users):
    def _create(name="Noir Club", owner="owner", visibility="public", tags=None, **extra):
        body = {"name": name, "visibility": visibility, "tags": tags or [], **extra}
        response = client.post("/groups", json=body, headers=users[owner].headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create


@pytest.fixture
def staffed_group(client, users, create_group):
    """A group owned by `owner` with two moderators and one plain member."""
    def _staffed(visibility="public", name="Staffed"):
        group = create_group(name=name, visibility=visibility)
        owner_headers = users["owner"].headers
        for username, role in (("moderator", "moderator"), ("moderator2", "moderator"), ("member", "member")):
            response = client.post(
                f"/groups/{group['id']}/members",
                json={"userId": users[username].id, "role": role},
                headers=owner_headers
            )
            assert response.status_code == 201, response.text
        return group
    return _staffed
