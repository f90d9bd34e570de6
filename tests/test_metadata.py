"""Tests for loading the attribute and element tables."""

import pytest

from pyrsx.core.errors import ConfigurationError
from pyrsx.engine import metadata as metadata_module
from pyrsx.engine.metadata import Metadata, get_metadata, load_metadata, set_metadata

from tests.conftest import write


class TestPackagedMetadata:

    def test_packaged_tables_load(self, metadata):
        assert metadata.is_property("value", "input")
        assert metadata.is_property("checked", "input")
        assert not metadata.is_property("value", "div")
        assert metadata.is_known_element("div")
        assert metadata.is_known_element("BUTTON")
        assert not metadata.is_known_element("widget")

    def test_global_metadata_is_loaded_once(self):
        first = get_metadata()
        assert get_metadata() is first

    def test_set_metadata(self):
        custom = Metadata(properties={}, elements=frozenset({"x"}))
        set_metadata(custom)
        assert get_metadata() is custom


class TestCustomTables:

    def test_paths_from_config(self, tmp_path, fresh_config):
        attributes = write(tmp_path / "attrs.json", '[{"attr": "value", "tags": ["Foo"]}]')
        elements = write(tmp_path / "tags.json", '["foo"]')
        fresh_config.set("metadata.attributes", str(attributes))
        fresh_config.set("metadata.elements", str(elements))

        loaded = get_metadata()
        assert loaded.is_property("value", "foo")
        assert loaded.elements == frozenset({"foo"})

    def test_records_for_same_attribute_merge(self, tmp_path):
        attributes = write(
            tmp_path / "attrs.json",
            '[{"attr": "src", "tags": ["img"]}, {"attr": "src", "tags": ["video"]}]',
        )
        loaded = load_metadata(attributes_path=attributes)
        assert loaded.properties["src"] == frozenset({"img", "video"})

    def test_missing_table(self, tmp_path):
        with pytest.raises(ConfigurationError, match="metadata table not found"):
            load_metadata(attributes_path=tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = write(tmp_path / "attrs.json", "[{not json")
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_metadata(attributes_path=path)

    @pytest.mark.parametrize("content, message", [
        ('{"attr": "x"}', "expected a list of attribute records"),
        ('["value"]', "expected an object"),
        ('[{"attr": "", "tags": []}]', "'attr' must be a non-empty string"),
        ('[{"attr": "x", "tags": "input"}]', "'tags' must be a list of strings"),
    ])
    def test_malformed_attributes(self, tmp_path, content, message):
        path = write(tmp_path / "attrs.json", content)
        with pytest.raises(ConfigurationError, match=message):
            load_metadata(attributes_path=path)

    def test_malformed_elements(self, tmp_path):
        path = write(tmp_path / "tags.json", '{"div": true}')
        with pytest.raises(ConfigurationError, match="expected a list of tag names"):
            load_metadata(elements_path=path)


class TestLoadFailure:

    def test_error_is_reported_once_and_cached(self, tmp_path, fresh_config, log_records, monkeypatch):
        fresh_config.set("metadata.attributes", str(tmp_path / "missing.json"))
        calls = []
        original = metadata_module.load_metadata

        def counting(*args, **kwargs):
            calls.append(args)
            return original(*args, **kwargs)

        monkeypatch.setattr(metadata_module, "load_metadata", counting)

        with pytest.raises(ConfigurationError) as first:
            get_metadata()
        with pytest.raises(ConfigurationError) as second:
            get_metadata()

        assert first.value is not second.value
        assert first.value.__cause__ is second.value.__cause__
        assert str(first.value) == str(second.value)
        assert len(calls) == 1
        assert log_records.messages().count("Could not load element metadata") == 1
