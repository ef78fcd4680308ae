import os
from decimal import Decimal

import pytest
from unittest.mock import patch

from shared.common_utils import env_settings
from shared.common_utils.env_settings import (
    EnvironmentReader,
    convert_value,
    load_environment,
    parse_switch,
)
from shared.common_utils.exceptions import TypeConversionFailure


@pytest.mark.parametrize(
    "raw_value,value_type,expected",
    [
        ("hello", "string", "hello"),
        ("Yes", "boolean", True),
        ("off", "boolean", False),
        (" 42 ", "integer", 42),
        ("2.5", "float", 2.5),
        ("10.10", "decimal", Decimal("10.10")),
    ],
)
def test_convert_value(raw_value, value_type, expected):
    assert convert_value(raw_value, value_type) == expected


def test_convert_value_failures():
    with pytest.raises(TypeConversionFailure):
        convert_value("abc", "integer")
    with pytest.raises(TypeConversionFailure):
        convert_value("1.2.3", "decimal")
    with pytest.raises(TypeError):
        convert_value("x", "uuid")


def test_parse_switch():
    assert parse_switch("TRUE") is True
    assert parse_switch(" no ") is False
    assert parse_switch("maybe") is None
    assert parse_switch(None) is None


def test_environment_reader_treats_empty_as_unset():
    reader = EnvironmentReader({"A": "1", "B": ""})
    assert reader.get("A") == "1"
    assert reader.get("B") is None
    assert not reader.is_set("B")


def test_environment_reader_defaults_to_process_environment():
    with patch.dict(os.environ, {"SQUIRREL_TEST_READER": "present"}):
        assert EnvironmentReader().get("SQUIRREL_TEST_READER") == "present"


def test_load_environment_does_not_override(tmp_path, monkeypatch):
    dotenv = tmp_path / ".env"
    dotenv.write_text("SQUIRREL_DOTENV_ONLY=from-file\nSQUIRREL_DOTENV_BOTH=from-file\n")
    monkeypatch.setattr(env_settings, "_dotenv_loaded", False)
    monkeypatch.setenv("SQUIRREL_DOTENV_BOTH", "from-process")
    monkeypatch.delenv("SQUIRREL_DOTENV_ONLY", raising=False)
    try:
        assert load_environment(str(dotenv))
        assert os.environ["SQUIRREL_DOTENV_ONLY"] == "from-file"
        assert os.environ["SQUIRREL_DOTENV_BOTH"] == "from-process"
        assert load_environment(str(dotenv)) is False
    finally:
        os.environ.pop("SQUIRREL_DOTENV_ONLY", None)
