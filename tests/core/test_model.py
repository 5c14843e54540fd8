import pytest

from queryguide.core import (
    BooleanField,
    DateTimeField,
    Index,
    IntegerField,
    Manager,
    Model,
    StringField,
)
from queryguide.exceptions import (
    FieldError,
    ModelConfigurationError,
    MultipleObjectsReturned,
    ObjectDoesNotExist,
)


class Member(Model):
    name = StringField(max_length=50)
    age = IntegerField(default=0)
    is_active = BooleanField(default=True)


class Entry(Model):
    headline = StringField()

    class Meta:
        app_label = "journal"
        ordering = ["-id"]
        indexes = [Index(fields=["-headline"])]


def test_model_metadata_collects_fields_in_order():
    assert list(Member._meta.fields.keys()) == ["id", "name", "age", "is_active"]
    assert Member._meta.primary_key.name == "id"
    assert Member._meta.table_name == "member"


def test_meta_options_are_applied():
    assert Entry._meta.table_name == "journal_entry"
    assert Entry._meta.label == "journal.Entry"
    assert Entry._meta.ordering == ("-id",)
    assert Entry._meta.indexes[0].fields == ("-headline",)


def test_model_initializes_defaults():
    member = Member(name="Alice")
    assert member.name == "Alice"
    assert member.age == 0
    assert member.is_active is True
    assert member.pk is None


def test_unknown_keyword_argument_is_rejected():
    with pytest.raises(TypeError, match="nickname"):
        Member(name="Alice", nickname="Al")


def test_setting_field_enforces_choices():
    class Article(Model):
        status = StringField(choices=("draft", "published"), default="draft")

    article = Article()
    with pytest.raises(ValueError):
        article.status = "archived"


def test_non_nullable_field_rejects_none():
    class Profile(Model):
        email = StringField()

    profile = Profile(email="user@example.com")
    assert profile.email == "user@example.com"

    with pytest.raises(ValueError):
        profile.email = None


def test_custom_primary_key_prevents_auto_field():
    class Token(Model):
        token_id = StringField(primary_key=True)

    assert list(Token._meta.fields.keys()) == ["token_id"]
    assert Token._meta.primary_key.name == "token_id"


def test_duplicate_primary_key_raises_error():
    with pytest.raises(ModelConfigurationError):

        class BadModel(Model):
            code = IntegerField(primary_key=True)
            other = IntegerField(primary_key=True)


def test_manual_id_field_without_primary_key_errors():
    with pytest.raises(ModelConfigurationError):

        class BadIdentifier(Model):
            id = IntegerField()


def test_concrete_model_inheritance_is_rejected():
    with pytest.raises(ModelConfigurationError):

        class SpecialMember(Member):
            rank = IntegerField()


def test_each_model_gets_its_own_retrieval_errors():
    assert issubclass(Member.DoesNotExist, ObjectDoesNotExist)
    assert issubclass(Member.MultipleObjectsReturned, MultipleObjectsReturned)
    assert Member.DoesNotExist is not Entry.DoesNotExist
    assert Member.DoesNotExist.__qualname__ == "Member.DoesNotExist"


def test_default_manager_is_added_when_none_declared():
    assert isinstance(Member.objects, Manager)
    assert Member._meta.default_manager is Member.objects


def test_get_field_resolves_pk_alias_and_reports_choices():
    assert Member._meta.get_field("pk") is Member._meta.primary_key
    with pytest.raises(FieldError, match="Choices are: pk, id, name, age, is_active"):
        Member._meta.get_field("nickname")


def test_str_repr_and_equality():
    first = Member(id=3, name="Alice")
    same = Member(id=3, name="Changed")
    assert str(first) == "Member object (3)"
    assert repr(first) == "<Member: Member object (3)>"
    assert first == same
    assert hash(first) == hash(same)
    assert Member(name="x") != Member(name="x")


def test_unsaved_instances_are_unhashable():
    with pytest.raises(TypeError):
        hash(Member(name="Alice"))


def test_to_dict_is_keyed_by_attname():
    member = Member(name="Alice", age=4)
    assert member.to_dict() == {"id": None, "name": "Alice", "age": 4, "is_active": True}


def test_delete_without_primary_key_raises():
    with pytest.raises(ValueError, match="can't be deleted"):
        Member(name="Alice").delete()


def test_auto_now_add_field_starts_empty():
    class Audit(Model):
        created_at = DateTimeField(auto_now_add=True)

    assert Audit().created_at is None
