"""Unit tests for entity include/exclude selection."""

import pytest

from metadata_provisioner.config.schema import EntitySelectionConfig
from metadata_provisioner.provisioning.entity_filter import skip_entity


class TestSkipEntity:
    """Test skip_entity() selection rules."""

    def test_empty_selection_processes_everything(self):
        selection = EntitySelectionConfig()
        assert skip_entity("https://idp.example.org", selection) is False

    def test_excluded_entity_is_skipped(self):
        selection = EntitySelectionConfig(exclude={"https://idp.example.org"})
        assert skip_entity("https://idp.example.org", selection) is True
        assert skip_entity("https://sp.example.org", selection) is False

    def test_include_restricts_to_listed_entities(self):
        selection = EntitySelectionConfig(include={"https://idp.example.org"})
        assert skip_entity("https://idp.example.org", selection) is False
        assert skip_entity("https://sp.example.org", selection) is True

    def test_exclude_wins_over_include(self):
        selection = EntitySelectionConfig(
            include={"https://idp.example.org"},
            exclude={"https://idp.example.org"},
        )
        assert skip_entity("https://idp.example.org", selection) is True

    @pytest.mark.parametrize(
        "include,exclude,entity_id,expected",
        [
            (set(), set(), "a", False),
            ({"a"}, set(), "b", True),
            (set(), {"a"}, "a", True),
            ({"a", "b"}, {"b"}, "a", False),
            ({"a", "b"}, {"b"}, "b", True),
            ({"a", "b"}, {"b"}, "c", True),
        ],
    )
    def test_selection_matrix(self, include, exclude, entity_id, expected):
        selection = EntitySelectionConfig(include=include, exclude=exclude)
        assert skip_entity(entity_id, selection) is expected

    def test_accepts_whole_config(self, make_config):
        config = make_config(entities={"include": [], "exclude": ["https://sp.example.net/shibboleth"]})
        assert skip_entity("https://sp.example.net/shibboleth", config) is True
        assert skip_entity("https://idp.example.org/idp/shibboleth", config) is False
