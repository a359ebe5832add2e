"""
Tests for recorder configuration and controller factories.
"""

from recorder import (
    MulticastChannel,
    RecorderConfig,
    create_custom_network_controller,
    create_default_controller,
    multicast_channel_factory,
)


class TestRecorderConfig:
    """Tests for environment-driven configuration."""

    def test_defaults(self):
        config = RecorderConfig.from_env({})
        assert config.multicast_group == "239.1.2.3"
        assert config.port == 3000
        assert config.interface_address == "0.0.0.0"
        assert config.storage == "memory"

    def test_overrides(self):
        config = RecorderConfig.from_env({
            "DISREC_MULTICAST_GROUP": "239.5.5.5",
            "DISREC_PORT": "3001",
            "DISREC_INTERFACE": "10.0.0.1",
            "DISREC_TTL": "4",
            "DISREC_STORAGE": "MEMORY",
        })
        assert config.multicast_group == "239.5.5.5"
        assert config.port == 3001
        assert config.interface_address == "10.0.0.1"
        assert config.multicast_ttl == 4
        assert config.storage == "memory"

    def test_bad_integer_ignored(self):
        config = RecorderConfig.from_env({"DISREC_PORT": "three-thousand"})
        assert config.port == 3000

    def test_to_dict(self):
        assert RecorderConfig().to_dict()["port"] == 3000


class TestFactories:
    """Tests for multicast controller construction."""

    def test_channel_factory(self):
        config = RecorderConfig(interface_address="127.0.0.1", multicast_ttl=3)
        channel = multicast_channel_factory(config)()

        assert isinstance(channel, MulticastChannel)
        assert channel.interface_address == "127.0.0.1"
        assert channel.ttl == 3
        assert not channel.closed
        channel.close()
        assert channel.closed

    def test_default_controller(self):
        config = RecorderConfig(multicast_group="239.7.7.7", port=4000)
        controller = create_default_controller(config)

        assert controller.recorder.multicast_group == "239.7.7.7"
        assert controller.replayer.port == 4000
        assert controller.recorder.storage is controller.replayer.storage

    def test_custom_network_controller(self, monkeypatch):
        """Group and port arguments win over the environment."""
        monkeypatch.setenv("DISREC_MULTICAST_GROUP", "239.5.5.5")
        monkeypatch.setenv("DISREC_PORT", "3001")
        monkeypatch.setenv("DISREC_INTERFACE", "10.0.0.1")

        controller = create_custom_network_controller("239.8.8.8", 5000)

        assert controller.recorder.multicast_group == "239.8.8.8"
        assert controller.replayer.port == 5000
