import pytest

from moviecat.core.config import get_settings
from moviecat.db import create_store_engine, init_models, make_session_factory, session_scope
from moviecat.services.catalog import CatalogWriter


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    # Keep a developer's real key or database out of the tests
    monkeypatch.delenv("TMDB_API_KEY", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def engine(tmp_path):
    engine = create_store_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    init_models(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def writer():
    return CatalogWriter()


@pytest.fixture
def counts(session_factory, writer):
    def _counts():
        with session_scope(session_factory) as session:
            return writer.counts(session)

    return _counts


@pytest.fixture
def catalog(session_factory, writer):
    """A small catalog: two Nolan films with cast, one film with no cast."""

    with session_scope(session_factory) as session:
        nolan = writer.upsert_person(session, "Christopher Nolan", 1970)
        ann = writer.upsert_person(session, "Ann Director")
        dicaprio = writer.upsert_person(session, "Leonardo DiCaprio", 1974)
        page = writer.upsert_person(session, "Elliot Page", 1987)
        hardy = writer.upsert_person(session, "Tom Hardy", 1977)
        mystery = writer.upsert_person(session, "Mystery Actor")

        inception = writer.insert_movie(
            session, title="Inception", director_id=nolan.id, release_year=2010, length_minutes=148
        )
        dunkirk = writer.insert_movie(
            session, title="Dunkirk", director_id=nolan.id, release_year=2017, length_minutes=106
        )
        writer.insert_movie(
            session, title="Test Film", director_id=ann.id, release_year=2020, length_minutes=90
        )
        for actor in (dicaprio, page, hardy):
            writer.link_actor(session, inception.id, actor.id)
        for actor in (hardy, mystery):
            writer.link_actor(session, dunkirk.id, actor.id)
    return session_factory
