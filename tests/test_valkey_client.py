"""
Tests for the Valkey client wrapper and its configuration.
"""

import pytest
from unittest.mock import MagicMock, patch

from valkey.exceptions import ConnectionError

from carrental.cache.client import ValkeyClient
from carrental.cache.config import ValkeyConfig, ValkeyConnectionError
from carrental.utils.config import RentalConfig


class TestValkeyConfig:
    """Test connection settings."""

    def test_from_config(self):
        config = ValkeyConfig.from_config(
            RentalConfig(valkey_host="cache.internal", valkey_port=6380, valkey_password="secret")
        )

        assert config.host == "cache.internal"
        assert config.port == 6380
        assert config.to_connection_pool_kwargs()["password"] == "secret"

    def test_password_hidden(self):
        config = ValkeyConfig(password="secret")

        assert "secret" not in str(config)
        assert "***" in str(config)

    def test_no_password_kwarg_when_unset(self):
        assert "password" not in ValkeyConfig().to_connection_pool_kwargs()


class TestValkeyClient:
    """Test connection handling with a mocked server."""

    @pytest.mark.asyncio
    async def test_connect(self):
        with patch("carrental.cache.client.ConnectionPool"), \
                patch("carrental.cache.client.valkey.Valkey") as valkey_cls:
            valkey_cls.return_value.ping.return_value = True
            client = ValkeyClient(ValkeyConfig())

            await client.connect()

            assert client.is_connected is True
            assert client.client is valkey_cls.return_value

    @pytest.mark.asyncio
    async def test_connect_gives_up(self):
        with patch("carrental.cache.client.ConnectionPool"), \
                patch("carrental.cache.client.valkey.Valkey") as valkey_cls, \
                patch("carrental.cache.client.asyncio.sleep") as sleep:
            valkey_cls.return_value.ping.side_effect = ConnectionError("refused")
            sleep.return_value = None
            client = ValkeyClient(ValkeyConfig(), max_connection_attempts=2)

            with pytest.raises(ValkeyConnectionError):
                await client.connect()

            assert client.is_connected is False

    def test_client_requires_connection(self):
        client = ValkeyClient(ValkeyConfig())

        with pytest.raises(ValkeyConnectionError):
            client.client

    @pytest.mark.asyncio
    async def test_health_check_marks_disconnected(self):
        with patch("carrental.cache.client.ConnectionPool"), \
                patch("carrental.cache.client.valkey.Valkey") as valkey_cls:
            valkey_cls.return_value.ping.return_value = True
            client = ValkeyClient(ValkeyConfig())
            await client.connect()

            valkey_cls.return_value.ping.side_effect = ConnectionError("gone")

            assert await client.health_check(force=True) is False
            assert client.is_connected is False
