"""
Unit tests for product expansion (variations and attribute terms).
"""

import pytest

from fakes import FakeWooCommerce, records
from src.graph.expander import ProductExpander
from src.graph.nodes import IdentityAssigner, make_node_id
from src.source import PageFetcher


def expander_for(registry, per_page=None):
    return ProductExpander(
        PageFetcher(registry, per_page), IdentityAssigner(), registry, per_page
    )


def products(*raw):
    return IdentityAssigner().assign_all(list(raw), "products", "shop")


class TestVariations:
    """Variations are fetched per product and embedded with their own identity."""

    @pytest.mark.asyncio
    async def test_variations_embedded(self, site, registry_for):
        fake = FakeWooCommerce({"products/12/variations": records(120, 3, parent_id=0)})
        nodes = products({"id": 12, "variations": [120, 121, 122]})

        await expander_for(registry_for(fake)).expand(nodes, site)

        variations = nodes[0].relations["variations"]
        assert [v.remote_id for v in variations] == [120, 121, 122]
        assert all(v.remote_parent_id == 12 for v in variations)
        assert all(v.kind == "wcProductsVariations" for v in variations)
        assert variations[0].id == make_node_id("shop", "productsVariations", 120)
        assert "variations" not in nodes[0].data

    @pytest.mark.asyncio
    async def test_variations_paginated(self, site, registry_for):
        fake = FakeWooCommerce({"products/12/variations": records(120, 25)}, per_page=10)
        nodes = products({"id": 12, "variations": list(range(120, 145))})

        await expander_for(registry_for(fake), per_page=10).expand(nodes, site)

        assert len(nodes[0].relations["variations"]) == 25
        assert len(fake.requests_to("products/12/variations")) == 3

    @pytest.mark.asyncio
    async def test_failed_fetch_keeps_variation_ids(self, site, registry_for, captured_warnings):
        fake = FakeWooCommerce(failures={("products/12/variations", 1): 500})
        nodes = products({"id": 12, "variations": [120, 121]}, {"id": 13})
        expander = expander_for(registry_for(fake))

        await expander.expand(nodes, site)

        assert nodes[0].relations["variations"] == [
            {"node_id": None, "remote_id": 120, "resolved": False},
            {"node_id": None, "remote_id": 121, "resolved": False},
        ]
        assert "variations" not in nodes[0].data
        assert expander.failures == 1
        assert any(
            "product 12" in message and "2 placeholder" in message
            for message in captured_warnings
        )

    @pytest.mark.asyncio
    async def test_partial_fetch_keeps_missing_ids(self, site, registry_for):
        fake = FakeWooCommerce(
            {"products/12/variations": records(120, 3)},
            per_page=2,
            failures={("products/12/variations", 2): 500},
        )
        nodes = products({"id": 12, "variations": [120, 121, 122]})
        expander = expander_for(registry_for(fake), per_page=2)

        await expander.expand(nodes, site)

        fetched, missing = nodes[0].relations["variations"][:2], nodes[0].relations["variations"][2]
        assert [v.remote_id for v in fetched] == [120, 121]
        assert missing == {"node_id": None, "remote_id": 122, "resolved": False}
        assert expander.failures == 1

    @pytest.mark.asyncio
    async def test_no_variations_no_request(self, site, registry_for):
        fake = FakeWooCommerce()
        nodes = products({"id": 12, "variations": []}, {"id": 13})

        await expander_for(registry_for(fake)).expand(nodes, site)

        assert fake.requests == []
        assert all("variations" not in node.relations for node in nodes)


class TestAttributeTerms:
    """Global attribute terms are fetched once per site and attribute."""

    @pytest.mark.asyncio
    async def test_terms_shared_across_products(self, site, registry_for):
        terms = [{"id": 1, "name": "Red"}, {"id": 2, "name": "Blue"}]
        fake = FakeWooCommerce({"products/attributes/3/terms": terms})
        attribute = {"id": 3, "name": "Color", "options": ["Red", "Blue"]}
        nodes = products(
            {"id": 1, "attributes": [attribute]},
            {"id": 2, "attributes": [attribute]},
            {"id": 4, "attributes": [attribute]},
        )

        await expander_for(registry_for(fake)).expand(nodes, site)

        assert len(fake.requests_to("products/attributes/3/terms")) == 1
        for node in nodes:
            assert node.relations["attributes"][0]["terms"] == terms
            assert node.relations["attributes"][0]["name"] == "Color"
            assert "attributes" not in node.data

    @pytest.mark.asyncio
    async def test_local_attribute_has_no_terms(self, site, registry_for):
        fake = FakeWooCommerce()
        nodes = products({"id": 1, "attributes": [{"id": 0, "name": "Size", "options": ["M"]}]})

        await expander_for(registry_for(fake)).expand(nodes, site)

        assert "terms" not in nodes[0].relations["attributes"][0]
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_terms_failure_is_none(self, site, registry_for, captured_warnings):
        fake = FakeWooCommerce(failures={("products/attributes/3/terms", 1): 500})
        nodes = products({"id": 1, "attributes": [{"id": 3, "name": "Color"}]})
        expander = expander_for(registry_for(fake))

        await expander.expand(nodes, site)

        assert nodes[0].relations["attributes"][0]["terms"] is None
        assert expander.failures == 0
        assert any("attribute 3" in message for message in captured_warnings)

    @pytest.mark.asyncio
    async def test_attribute_nodes_get_terms(self, site, registry_for):
        terms = [{"id": 1, "name": "Red"}]
        fake = FakeWooCommerce({"products/attributes/3/terms": terms})
        nodes = IdentityAssigner().assign_all(
            [{"id": 3, "name": "Color"}], "productsAttributes", "shop"
        )

        await expander_for(registry_for(fake)).expand(nodes, site)

        assert nodes[0].relations["terms"] == terms


class TestFailureIsolation:

    @pytest.mark.asyncio
    async def test_failing_product_does_not_affect_others(
        self, site, registry_for, captured_warnings, monkeypatch
    ):
        fake = FakeWooCommerce({
            "products/1/variations": records(10, 1),
            "products/2/variations": records(20, 1),
        })
        nodes = products(
            {"id": 1, "variations": [10]},
            {"id": 2, "variations": [20]},
        )
        expander = expander_for(registry_for(fake))
        original = expander._expand_variations

        async def flaky(product, site_config):
            if product.remote_id == 1:
                raise RuntimeError("boom")
            return await original(product, site_config)

        monkeypatch.setattr(expander, "_expand_variations", flaky)

        await expander.expand(nodes, site)

        assert expander.failures == 1
        assert "variations" not in nodes[0].relations
        assert [v.remote_id for v in nodes[1].relations["variations"]] == [20]
        assert any("boom" in message for message in captured_warnings)
