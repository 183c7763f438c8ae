"""
Shared test fixtures for the ingestion pipeline tests.
"""

from typing import List, Optional

import pytest
from loguru import logger

from fakes import FakeWooCommerce
from src.source import ClientRegistry
from src.utils.config import ApiKeys, MediaConfig, PipelineConfig, SiteConfig, TransportConfig


@pytest.fixture
def site():
    """The 'shop' site every fake store answers for."""
    return SiteConfig(
        api="shop.example.com",
        site_name="shop",
        api_keys=ApiKeys(consumer_key="ck_test", consumer_secret="cs_test"),
    )


@pytest.fixture
def registry_for():
    """Build a ClientRegistry that talks to a FakeWooCommerce."""
    def _build(fake: FakeWooCommerce, transport: Optional[TransportConfig] = None):
        return ClientRegistry(transport or TransportConfig(), http_transport=fake.transport())
    return _build


@pytest.fixture
def pipeline_config(site):
    """Config for one site, without a media cache file or report."""
    def _build(fields: List[str], **overrides):
        values = dict(
            sites=[site],
            fields=fields,
            media=MediaConfig(cache_path=None),
            report_path=None,
        )
        values.update(overrides)
        return PipelineConfig(**values)
    return _build


@pytest.fixture
def captured_warnings():
    """Messages of every WARNING (or worse) logged during the test."""
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)
