"""Tests for model JSON interchange."""

import json

import pytest
from erd_modeler.serialization import dump_model, load_model, model_from_dict, model_to_dict

DOCUMENT = {
    "id": "m1",
    "name": "Shop",
    "description": "Online shop",
    "targetDatabase": "mysql",
    "notation": "crowsfoot",
    "createdAt": "2024-01-01T00:00:00Z",
    "updatedAt": "2024-01-02T00:00:00Z",
    "entities": [
        {
            "id": "c",
            "name": "Customer",
            "x": 10,
            "y": 20,
            "width": 220,
            "height": 150,
            "category": "standard",
            "attributes": [
                {"id": "c1", "name": "id", "type": "INT", "isPrimaryKey": True, "isRequired": True},
            ],
        },
        {
            "id": "o",
            "name": "Order",
            "physicalName": "orders",
            "x": 300,
            "y": 20,
            "width": 220,
            "height": 150,
            "attributes": [
                {"id": "o1", "name": "id", "type": "INT", "isPrimaryKey": True},
                {"id": "o2", "name": "customer_id", "type": "INT", "isForeignKey": True},
            ],
        },
    ],
    "relationships": [
        {
            "id": "r1",
            "type": "non-identifying",
            "sourceEntityId": "o",
            "targetEntityId": "c",
            "sourceCardinality": "M",
            "targetCardinality": "1",
            "sourceAttribute": "customer_id",
            "targetAttribute": "id",
        },
    ],
}


class TestModelFromDict:
    """Tests for reading model documents."""

    def test_reads_entities_and_flags(self):
        model = model_from_dict(DOCUMENT)

        assert model.name == "Shop"
        assert model.target_database == "mysql"
        assert [e.name for e in model.entities] == ["Customer", "Order"]
        assert model.entities[1].physical_name == "orders"
        assert model.entities[1].attributes[1].is_foreign_key is True
        assert model.entities[0].attributes[0].is_primary_key is True

    def test_height_is_derived_not_read(self):
        model = model_from_dict(DOCUMENT)
        assert model.entities[0].height == 32 + 16 + 24

    def test_attribute_names_resolve_to_ids(self):
        rel = model_from_dict(DOCUMENT).relationships[0]
        assert rel.source_attribute_id == "o2"
        assert rel.target_attribute_id == "c1"

    def test_missing_optional_fields_use_defaults(self):
        model = model_from_dict({"name": "Bare", "entities": [{"name": "Thing"}]})
        assert model.target_database == "postgresql"
        assert model.entities[0].category == "standard"
        assert model.entities[0].width == 220
        assert model.entities[0].id

    @pytest.mark.parametrize(
        "patch",
        [
            {"targetDatabase": "db2"},
            {"notation": "uml"},
            {"relationships": [{"sourceEntityId": "a", "targetEntityId": "b", "sourceCardinality": "many"}]},
        ],
    )
    def test_rejects_unknown_enumerations(self, patch):
        with pytest.raises(ValueError):
            model_from_dict({**DOCUMENT, **patch})


class TestModelToDict:
    """Tests for writing model documents."""

    def test_uses_camel_case_keys(self):
        data = model_to_dict(model_from_dict(DOCUMENT))
        assert data["targetDatabase"] == "mysql"
        assert data["entities"][1]["physicalName"] == "orders"
        assert data["entities"][1]["attributes"][1]["isForeignKey"] is True
        assert data["relationships"][0]["sourceAttributeId"] == "o2"

    def test_omits_unset_optionals(self):
        data = model_to_dict(model_from_dict(DOCUMENT))
        assert "physicalName" not in data["entities"][0]
        assert "defaultValue" not in data["entities"][0]["attributes"][0]

    def test_dump_and_load_file(self, tmp_path):
        path = tmp_path / "model.json"
        path.write_text(dump_model(model_from_dict(DOCUMENT)))

        model = load_model(path)
        assert json.loads(path.read_text())["name"] == "Shop"
        assert model.relationships[0].target_entity_id == "c"
