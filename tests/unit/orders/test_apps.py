"""Unit tests for the orders app system check."""

from __future__ import annotations

import pytest

from modules.orders.apps import check_repository_backend

pytestmark = pytest.mark.unit


@pytest.mark.parametrize("backend", ["django", "memory"])
def test_known_backend_passes(settings, backend):
    settings.ORDERS_REPOSITORY_BACKEND = backend
    assert check_repository_backend() == []


def test_unknown_backend_is_reported(settings):
    settings.ORDERS_REPOSITORY_BACKEND = "mongo"

    errors = check_repository_backend()

    assert [error.id for error in errors] == ["orders.E001"]
    assert "mongo" in errors[0].msg
