"""Shared fixtures: a small shop schema used across the test suite."""

import pytest

from queryadvisor.analyzer.observability import AdvisorMetrics
from queryadvisor.catalog import Column, Index, SchemaCatalog, Table
from queryadvisor.config import AdvisorConfig


def make_catalog() -> SchemaCatalog:
    """
    users(id pk, email idx, name, created_at)
    orders(id pk, user_id, status, total, created_at; idx (created_at, total))
    order_items(id pk, order_id idx, product_id, quantity)
    products(id pk, sku unique, name)
    """
    return SchemaCatalog.from_tables([
        Table(
            name="users",
            columns=(
                Column(name="id", type="bigint", nullable=False),
                Column(name="email", type="text", nullable=False),
                Column(name="name", type="text"),
                Column(name="created_at", type="timestamp"),
            ),
            primary_key=("id",),
            indexes=(Index(name="users_email_idx", columns=("email",)),),
        ),
        Table(
            name="orders",
            columns=(
                Column(name="id", type="bigint", nullable=False),
                Column(name="user_id", type="bigint"),
                Column(name="status", type="text"),
                Column(name="total", type="numeric"),
                Column(name="created_at", type="timestamp"),
            ),
            primary_key=("id",),
            indexes=(
                Index(name="orders_created_total_idx", columns=("created_at", "total")),
            ),
        ),
        Table(
            name="order_items",
            columns=(
                Column(name="id", type="bigint", nullable=False),
                Column(name="order_id", type="bigint", nullable=False),
                Column(name="product_id", type="bigint"),
                Column(name="quantity", type="int"),
            ),
            primary_key=("id",),
            indexes=(Index(name="order_items_order_idx", columns=("order_id",)),),
        ),
        Table(
            name="products",
            columns=(
                Column(name="id", type="bigint", nullable=False),
                Column(name="sku", type="text", nullable=False),
                Column(name="name", type="text"),
            ),
            primary_key=("id",),
            indexes=(Index(name="products_sku_key", columns=("sku",), unique=True),),
        ),
    ])


@pytest.fixture
def catalog() -> SchemaCatalog:
    return make_catalog()


@pytest.fixture
def config() -> AdvisorConfig:
    """Explicit defaults, independent of QUERYADVISOR_* variables."""
    return AdvisorConfig()


@pytest.fixture
def sequential_config() -> AdvisorConfig:
    return AdvisorConfig(parallel=False)


@pytest.fixture
def metrics() -> AdvisorMetrics:
    return AdvisorMetrics()
