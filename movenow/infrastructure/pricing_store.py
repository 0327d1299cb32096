"""
Pricing configuration stores.

Quotes read one whole ``PricingConfig`` snapshot per request; admins replace
it.  Both stores apply an update as read-merge-validate-swap under a single
lock, and the swap replaces the whole object, so a concurrent quote sees
either the old config or the new one, never a mix.

* ``InMemoryPricingConfigStore`` -- per process, guarded by an ``asyncio.Lock``.
* ``RedisPricingConfigStore``    -- shared by all API processes; the config is
  one JSON document and updates hold a ``DistributedLock``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

import redis.asyncio as aioredis

from .locks import DistributedLock
from movenow.domain.pricing import (
    PricingConfig,
    default_pricing_config,
    merge_pricing_config,
)

logger = logging.getLogger(__name__)


class PricingConfigStore(ABC):
    @abstractmethod
    async def get(self) -> PricingConfig: ...

    @abstractmethod
    async def update(
        self, patch: Mapping[str, Any], admin_id: Optional[int] = None
    ) -> PricingConfig: ...

    @abstractmethod
    async def reset(self, admin_id: Optional[int] = None) -> PricingConfig: ...


class InMemoryPricingConfigStore(PricingConfigStore):
    def __init__(self, initial: Optional[PricingConfig] = None):
        self._config = initial or default_pricing_config()
        self._lock = asyncio.Lock()

    async def get(self) -> PricingConfig:
        return self._config

    async def update(
        self, patch: Mapping[str, Any], admin_id: Optional[int] = None
    ) -> PricingConfig:
        async with self._lock:
            new_config = merge_pricing_config(self._config, patch)
            self._config = new_config
        logger.info("Pricing configuration updated by admin %s: %s", admin_id, dict(patch))
        return new_config

    async def reset(self, admin_id: Optional[int] = None) -> PricingConfig:
        async with self._lock:
            self._config = default_pricing_config()
        logger.info("Pricing configuration reset to defaults by admin %s", admin_id)
        return self._config


class RedisPricingConfigStore(PricingConfigStore):
    def __init__(
        self,
        client: aioredis.Redis,
        key: str = "pricing:config",
        lock_ttl_seconds: int = 10,
        lock_wait_seconds: float = 2.0,
    ):
        self.redis = client
        self.key = key
        self.lock_ttl_seconds = lock_ttl_seconds
        self.lock_wait_seconds = lock_wait_seconds

    async def get(self) -> PricingConfig:
        raw = await self.redis.get(self.key)
        if raw is None:
            return default_pricing_config()
        return PricingConfig.from_dict(json.loads(raw))

    async def _write(self, config: PricingConfig) -> None:
        await self.redis.set(self.key, json.dumps(config.to_dict()))

    def _lock(self) -> DistributedLock:
        return DistributedLock(
            self.redis,
            self.key,
            ttl_seconds=self.lock_ttl_seconds,
            wait_seconds=self.lock_wait_seconds,
        )

    async def update(
        self, patch: Mapping[str, Any], admin_id: Optional[int] = None
    ) -> PricingConfig:
        async with self._lock():
            new_config = merge_pricing_config(await self.get(), patch)
            await self._write(new_config)
        logger.info("Pricing configuration updated by admin %s: %s", admin_id, dict(patch))
        return new_config

    async def reset(self, admin_id: Optional[int] = None) -> PricingConfig:
        config = default_pricing_config()
        async with self._lock():
            await self._write(config)
        logger.info("Pricing configuration reset to defaults by admin %s", admin_id)
        return config
