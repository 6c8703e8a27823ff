import pytest

from searchable.core.configuration import (
    JoinSpec,
    SearchColumn,
    SearchConfiguration,
    configure,
    configure_from_mapping,
)
from searchable.core.exceptions import ConfigurationError


@pytest.fixture
def user_columns():
    return {"first_name": 10, "last_name": 10, "bio": 2, "email": 5}


class TestConfigure:
    """Test configuration normalization."""

    def test_bare_columns_are_qualified(self, user_columns):
        config = configure(user_columns, primary_table="users")

        assert isinstance(config, SearchConfiguration)
        assert [c.qualified_name for c in config.columns] == [
            "users.first_name", "users.last_name", "users.bio", "users.email"
        ]
        assert config.columns[0] == SearchColumn(table="users", name="first_name", weight=10.0)

    def test_qualified_columns_kept(self):
        config = configure(
            {"users.first_name": 10, "posts.title": 2},
            joins={"posts": ["users.id", "posts.user_id"]},
            primary_table="users",
        )

        assert config.columns[1].table == "posts"
        assert config.joins == (JoinSpec("posts", "users.id", "posts.user_id"),)
        assert config.joins[0].local == ("users", "id")
        assert config.joins[0].foreign == ("posts", "user_id")

    def test_insertion_order_preserved(self):
        config = configure({"c": 1, "a": 3, "b": 2}, primary_table="t")
        assert [c.name for c in config.columns] == ["c", "a", "b"]

    def test_totals(self, user_columns):
        config = configure(user_columns, primary_table="users")
        assert config.column_count == 4
        assert config.total_weight == 27
        assert config.weight_of("users.email") == 5

    def test_weight_of_unknown_column(self, user_columns):
        config = configure(user_columns, primary_table="users")
        with pytest.raises(KeyError):
            config.weight_of("users.nope")

    def test_float_weights_allowed(self):
        config = configure({"name": 0.5}, primary_table="t")
        assert config.columns[0].weight == 0.5

    def test_equal_weights_allowed(self):
        config = configure({"a": 10, "b": 10}, primary_table="t")
        assert {c.weight for c in config.columns} == {10.0}

    def test_joins_in_use_only_when_referenced(self):
        config = configure(
            {"name": 1, "posts.title": 1},
            joins={"posts": ("users.id", "posts.user_id"), "tags": ("users.id", "tags.user_id")},
            primary_table="users",
        )
        assert [j.related_table for j in config.joins_in_use()] == ["posts"]
        assert config.tables == ("users", "posts")

    def test_group_by_is_qualified(self):
        config = configure({"name": 1}, primary_table="users", group_by=["id"])
        assert config.group_by == ("users.id",)

    def test_idempotent(self, user_columns):
        joins = {"posts": ("users.id", "posts.user_id")}
        first = configure(dict(user_columns, **{"posts.title": 2}), joins=joins, primary_table="users")
        second = configure(dict(user_columns, **{"posts.title": 2}), joins=joins, primary_table="users")
        assert first == second
        assert hash(first) == hash(second)


class TestConfigureErrors:
    """Test configuration validation failures."""

    def test_empty_columns(self):
        with pytest.raises(ConfigurationError, match="At least one"):
            configure({}, primary_table="users")

    def test_columns_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            configure(["first_name"], primary_table="users")

    @pytest.mark.parametrize("weight", [0, -1, -0.5])
    def test_non_positive_weight(self, weight):
        with pytest.raises(ConfigurationError, match="positive"):
            configure({"name": weight}, primary_table="users")

    @pytest.mark.parametrize("weight", ["10", None, True, [1]])
    def test_non_numeric_weight(self, weight):
        with pytest.raises(ConfigurationError, match="number"):
            configure({"name": weight}, primary_table="users")

    @pytest.mark.parametrize("weight", [float("nan"), float("inf")])
    def test_non_finite_weight(self, weight):
        with pytest.raises(ConfigurationError, match="finite"):
            configure({"name": weight}, primary_table="users")

    def test_unjoined_table(self):
        with pytest.raises(ConfigurationError, match="not joined"):
            configure({"name": 1, "posts.title": 1}, primary_table="users")

    @pytest.mark.parametrize("keys", [
        ("users.id", "comments.user_id"),
        ("accounts.id", "posts.user_id"),
        ("posts.id", "posts.user_id"),
    ])
    def test_join_keys_outside_joined_tables(self, keys):
        with pytest.raises(ConfigurationError, match="must link users and posts"):
            configure({"name": 1, "posts.title": 1}, joins={"posts": keys}, primary_table="users")

    def test_join_to_primary_table(self):
        with pytest.raises(ConfigurationError, match="joined to itself"):
            configure({"name": 1}, joins={"users": ("users.id", "users.manager_id")}, primary_table="users")

    def test_join_keys_in_either_order(self):
        config = configure(
            {"name": 1, "posts.title": 1},
            joins={"posts": ("posts.user_id", "users.id")},
            primary_table="users",
        )
        assert config.joins[0].local_key == "posts.user_id"

    def test_duplicate_after_qualification(self):
        with pytest.raises(ConfigurationError, match="twice"):
            configure({"name": 1, "users.name": 2}, primary_table="users")

    @pytest.mark.parametrize("key", ["", "a.b.c", ".name", "users."])
    def test_malformed_column_name(self, key):
        with pytest.raises(ConfigurationError):
            configure({key: 1}, primary_table="users")

    def test_missing_primary_table(self):
        with pytest.raises(ConfigurationError, match="primary table"):
            configure({"name": 1})

    @pytest.mark.parametrize("keys", [
        ("id", "posts.user_id"),
        ("users.id",),
        "users.id",
        ("users.id", "posts.user_id", "posts.id"),
    ])
    def test_malformed_join(self, keys):
        with pytest.raises(ConfigurationError):
            configure({"name": 1}, joins={"posts": keys}, primary_table="users")

    def test_joins_not_a_mapping(self):
        with pytest.raises(ConfigurationError, match="mapping"):
            configure({"name": 1}, joins=[("posts", "users.id", "posts.user_id")], primary_table="users")


class TestConfigureFromMapping:
    """Test model-level searchable declarations."""

    def test_declaration(self):
        config = configure_from_mapping(
            {"columns": {"name": 3}, "joins": {}, "group_by": ["id"]},
            primary_table="users",
        )
        assert config.columns[0].qualified_name == "users.name"
        assert config.group_by == ("users.id",)

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError, match="Unknown"):
            configure_from_mapping({"columns": {"name": 3}, "threshold": 5}, primary_table="users")

    def test_missing_columns(self):
        with pytest.raises(ConfigurationError):
            configure_from_mapping({"joins": {}}, primary_table="users")

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            configure_from_mapping(["name"], primary_table="users")
