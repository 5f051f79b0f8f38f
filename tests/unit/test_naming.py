"""Unit tests for connection naming and deduplication."""

import pytest
from lxml import etree

from metadata_provisioner.models.metadata import EntityDescriptor, Role
from metadata_provisioner.provisioning.naming import NameRegistry, friendly_base_name

MD = "urn:oasis:names:tc:SAML:2.0:metadata"


def _entity(entity_id: str, org_name: str = None) -> EntityDescriptor:
    org = ""
    if org_name is not None:
        org = (
            f"<md:Organization><md:OrganizationName xml:lang='en'>{org_name}"
            f"</md:OrganizationName></md:Organization>"
        )
    xml = f'<md:EntityDescriptor xmlns:md="{MD}" entityID="{entity_id}">{org}</md:EntityDescriptor>'
    return EntityDescriptor.from_element(etree.fromstring(xml))


class TestNameRegistry:
    """Test NameRegistry.generate()."""

    def test_first_use_returns_base_name(self):
        registry = NameRegistry()
        assert registry.generate("[P] Acme", Role.IDP) == "[P] Acme"

    def test_repeated_names_get_counter_suffix(self):
        registry = NameRegistry()
        names = [registry.generate("[P] Acme", Role.IDP) for _ in range(3)]
        assert names == ["[P] Acme", "[P] Acme (1)", "[P] Acme (2)"]

    def test_names_are_unique_within_role(self):
        registry = NameRegistry()
        names = [registry.generate("[P] Acme", "sp") for _ in range(10)]
        assert len(set(names)) == 10

    def test_roles_do_not_interact(self):
        registry = NameRegistry()
        assert registry.generate("[P] Acme", Role.IDP) == "[P] Acme"
        assert registry.generate("[P] Acme", Role.SP) == "[P] Acme"
        assert registry.generate("[P] Acme", Role.IDP) == "[P] Acme (1)"
        assert registry.generate("[P] Acme", Role.SP) == "[P] Acme (1)"

    def test_sp_sequence_unaffected_by_idp_calls(self):
        with_idp = NameRegistry()
        without_idp = NameRegistry()

        sequence = []
        for _ in range(3):
            with_idp.generate("[P] Acme", Role.IDP)
            sequence.append(with_idp.generate("[P] Acme", Role.SP))

        assert sequence == [without_idp.generate("[P] Acme", Role.SP) for _ in range(3)]

    def test_role_names_are_case_insensitive(self):
        registry = NameRegistry()
        registry.generate("[P] Acme", "idp")
        assert registry.generate("[P] Acme", "IDP") == "[P] Acme (1)"
        assert registry.generate("[P] Acme", Role.IDP) == "[P] Acme (2)"

    def test_different_base_names_are_independent(self):
        registry = NameRegistry()
        registry.generate("[P] Acme", Role.IDP)
        assert registry.generate("[P] Other", Role.IDP) == "[P] Other"

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError, match="Unknown role"):
            NameRegistry().generate("[P] Acme", "aa")

    def test_reset_clears_counters(self):
        registry = NameRegistry()
        registry.generate("[P] Acme", Role.IDP)
        registry.reset()
        assert registry.generate("[P] Acme", Role.IDP) == "[P] Acme"


class TestFriendlyBaseName:
    """Test friendly_base_name()."""

    def test_uses_organization_name(self):
        entity = _entity("https://idp.example.org", "Example University")
        assert friendly_base_name(entity) == "[P] Example University"

    def test_falls_back_to_entity_id(self):
        entity = _entity("https://idp.example.org")
        assert friendly_base_name(entity) == "[P] https://idp.example.org"

    def test_blank_organization_name_falls_back(self):
        entity = _entity("https://idp.example.org", "   ")
        assert friendly_base_name(entity) == "[P] https://idp.example.org"

    def test_custom_prefix(self):
        entity = _entity("https://idp.example.org", "Example University")
        assert friendly_base_name(entity, prefix="") == "Example University"
