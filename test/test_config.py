"""
SelectionConfig Tests

Tests for loading selection configs from JSON and applying them to a
registry.

Run: python -m pytest test/test_config.py -v
"""

import sys
from pathlib import Path

import orjson
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from registrar import CheckContext, Registry, SelectionConfig, loadSelectionConfig


class Probe:
    def __init__(self, isCompatible: bool):
        self.isCompatible = isCompatible

    async def compatible(self, ctx) -> bool:
        return self.isCompatible


@pytest.fixture
def registry():
    registry = Registry()
    registry.register("ipmitool", "ipmi", ["powerset"], driverInterface=Probe(True))
    registry.register("dell", "redfish", ["powerset", "usercreate"], driverInterface=Probe(True))
    registry.register("smc", "redfish", ["powerset"], driverInterface=Probe(False))
    registry.register("hp", "redfish", ["usercreate"], driverInterface=Probe(True))
    return registry


@pytest.fixture
def configFile(tmp_path):
    def write(data) -> Path:
        path = tmp_path / "selection.json"
        path.write_bytes(orjson.dumps(data))
        return path
    return write


class TestLoad:
    """Test loading and validation"""

    def test_load_full_config(self, configFile):
        """All keys are read"""
        path = configFile({
            "protocol": "redfish",
            "driver": "dell",
            "features": ["powerset"],
            "preferProtocols": ["redfish", "ipmi"],
            "preferDrivers": "dell",
            "checkTimeout": 5
        })
        config = loadSelectionConfig(path)

        assert config == SelectionConfig(protocol="redfish", driver="dell", features=["powerset"],
                                         preferProtocols=["redfish", "ipmi"], preferDrivers=["dell"],
                                         checkTimeout=5.0)

    def test_empty_config(self, configFile):
        """Every key is optional"""
        assert loadSelectionConfig(configFile({})) == SelectionConfig()

    @pytest.mark.parametrize("data, message", [
        ([], "not a JSON object"),
        ({"protcol": "web"}, "Unknown selection config keys: protcol"),
        ({"protocol": 3}, "'protocol' must be a string"),
        ({"features": [1, 2]}, "'features' must be a string or a list of strings"),
        ({"checkTimeout": "soon"}, "'checkTimeout' must be a number"),
        ({"checkTimeout": True}, "'checkTimeout' must be a number"),
        ({"checkTimeout": -1}, "'checkTimeout' must be non-negative"),
    ])
    def test_invalid_config(self, configFile, data, message):
        """Malformed configs raise ValueError naming the problem"""
        with pytest.raises(ValueError, match=message):
            loadSelectionConfig(configFile(data))

    def test_missing_file(self, tmp_path):
        """Unreadable file -> ValueError"""
        with pytest.raises(ValueError, match="Cannot read selection config"):
            loadSelectionConfig(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        """Broken JSON -> ValueError"""
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="Cannot read selection config"):
            loadSelectionConfig(path)


class TestApply:
    """Test applying configs to a registry"""

    def test_empty_config_keeps_registry(self, registry):
        """No keys -> same drivers, same order, new registry"""
        result = SelectionConfig().apply(registry)
        assert result == registry
        assert result is not registry

    def test_filters_then_preferences(self, registry):
        """using -> supports -> preferDriver"""
        config = SelectionConfig(protocol="redfish", features=["powerset"], preferDrivers=["smc"])
        assert config.apply(registry).names() == ["smc", "dell"]

    def test_prefer_protocols(self, registry):
        """Preferences reorder without filtering"""
        config = SelectionConfig(preferProtocols=["redfish"])
        assert config.apply(registry).names() == ["dell", "smc", "hp", "ipmitool"]

    def test_driver_filter(self, registry):
        """driver key filters on name"""
        assert SelectionConfig(driver="hp").apply(registry).names() == ["hp"]

    def test_context_deadline(self):
        """checkTimeout becomes the context deadline"""
        assert SelectionConfig(checkTimeout=10).context().remaining() > 5
        assert SelectionConfig().context().remaining() is None

    def test_context_from_parent(self):
        """Derived contexts follow their parent"""
        parent = CheckContext.background()
        ctx = SelectionConfig().context(parent)
        parent.cancel()
        assert ctx.cancelled

    @pytest.mark.asyncio
    async def test_select(self, registry):
        """select() applies the chain then drops incompatible drivers"""
        config = SelectionConfig(features=["powerset"], preferProtocols=["redfish"], checkTimeout=5)
        result = await config.select(registry)
        assert result.names() == ["dell", "ipmitool"]
        assert registry.names() == ["ipmitool", "dell", "smc", "hp"]
