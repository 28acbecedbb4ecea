import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scoreboard.database import Base, enable_sqlite_foreign_keys, get_db
from scoreboard.main import app
from scoreboard.models import GroupMember, GroupRule, ScoringRule
from scoreboard.models.enums import GroupRole, UserRole
from scoreboard.routers.auth import login_limiter
from scoreboard.services.auth import AuthService

PASSWORD = "Str0ng!Passw0rd"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    login_limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    login_limiter.reset()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(email=None, role=UserRole.USER, name=None, password=PASSWORD):
        counter["n"] += 1
        email = email or f"user{counter['n']}@scoreboard.io"
        user = AuthService.create_user(db, email, password, name=name or f"User {counter['n']}", role=role)
        db.commit()
        db.refresh(user)
        return user

    return _make


def auth_headers(user) -> dict:
    token = AuthService.create_access_token(data={"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@scoreboard.io", role=UserRole.ADMIN, name="Admin")


@pytest.fixture
def owner(make_user):
    return make_user(email="owner@scoreboard.io", name="Owner")


@pytest.fixture
def group(client, owner):
    response = client.post(
        "/api/groups",
        json={"name": "Study Club", "description": "Weekly study group"},
        headers=auth_headers(owner),
    )
    assert response.status_code == 201
    return response.json()


def add_member(db, group_id, user, role=GroupRole.MEMBER):
    member = GroupMember(user_id=user.id, group_id=group_id, role=role)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def make_rule(db, name="Homework", points=10, group_id=None, link_to=None, is_active=True):
    rule = ScoringRule(name=name, points=points, group_id=group_id, is_active=is_active)
    db.add(rule)
    db.flush()
    if link_to:
        db.add(GroupRule(group_id=link_to, rule_id=rule.id, is_active=True))
    db.commit()
    db.refresh(rule)
    return rule
