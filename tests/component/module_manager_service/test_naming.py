import pytest

from services.module_manager_service.src.naming import (
    enabled_variable_name,
    environment_prefix,
    environment_variable_name,
)


@pytest.mark.parametrize(
    "module_id,key,expected",
    [
        ("lucene-search", "IndexPath", "PLUGIN_LUCENE_SEARCH_INDEXPATH"),
        ("Squirrel.Oidc", "ClientSecret", "PLUGIN_SQUIRREL_OIDC_CLIENTSECRET"),
        ("simple", "a", "PLUGIN_SIMPLE_A"),
    ],
)
def test_environment_variable_name(module_id, key, expected):
    assert environment_variable_name(module_id, key) == expected


def test_enabled_variable_name():
    assert enabled_variable_name("lucene-search") == "PLUGIN_LUCENE_SEARCH_ENABLED"


def test_prefix():
    assert environment_prefix("Squirrel.Oidc") == "PLUGIN_SQUIRREL_OIDC_"


@pytest.mark.parametrize("module_id", ["", "   "])
def test_empty_module_id_is_rejected(module_id):
    with pytest.raises(ValueError):
        environment_prefix(module_id)


def test_empty_key_is_rejected():
    with pytest.raises(ValueError):
        environment_variable_name("lucene-search", "")
