import pytest

from queryguide.config import Settings
from queryguide.core import Model, StringField
from queryguide.db import Database, DatabaseNotConfigured, connect, disconnect, get_database, use


class Tag(Model):
    name = StringField()


@pytest.fixture(autouse=True)
def reset_default():
    disconnect()
    yield
    disconnect()


def test_get_database_without_configuration_raises():
    with pytest.raises(DatabaseNotConfigured):
        get_database()
    with pytest.raises(DatabaseNotConfigured):
        list(Tag.objects.all())


def test_connect_installs_default_database():
    database = connect("sqlite:///:memory:", settings=Settings())
    assert get_database() is database
    database.create_tables(Tag)
    Tag.objects.create(name="python")
    assert Tag.objects.count() == 1


def test_connect_reads_url_from_settings():
    database = connect(settings=Settings(database_url="sqlite:///:memory:"))
    assert database.config.url == "sqlite:///:memory:"


def test_use_overrides_default_for_the_block():
    default = connect("sqlite:///:memory:", settings=Settings())
    other = Database("sqlite:///:memory:", settings=Settings())
    with use(other):
        assert get_database() is other
        with use(default):
            assert get_database() is default
        assert get_database() is other
    assert get_database() is default
    other.close()


def test_querysets_resolve_database_when_evaluated():
    first = Database("sqlite:///:memory:", settings=Settings())
    second = Database("sqlite:///:memory:", settings=Settings())
    for database in (first, second):
        database.create_tables(Tag)
    with use(first):
        Tag.objects.create(name="only-in-first")

    queryset = Tag.objects.all()
    with use(second):
        assert list(queryset) == []
    first.close()
    second.close()


def test_saved_instance_remembers_its_database():
    first = Database("sqlite:///:memory:", settings=Settings())
    second = Database("sqlite:///:memory:", settings=Settings())
    for database in (first, second):
        database.create_tables(Tag)
    with use(first):
        tag = Tag.objects.create(name="python")
    with use(second):
        tag.name = "renamed"
        tag.save()
    with use(first):
        assert Tag.objects.get(pk=tag.pk).name == "renamed"
    with use(second):
        assert Tag.objects.count() == 0
    first.close()
    second.close()


def test_connect_again_closes_previous_default():
    first = connect("sqlite:///:memory:", settings=Settings())
    second = connect("sqlite:///:memory:", settings=Settings())
    assert get_database() is second
    assert first.adapter.connected is False
    assert second.adapter.connected is True
