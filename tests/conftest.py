"""Shared fixtures for pythemesync tests."""

from concurrent.futures import Executor, Future
from pathlib import Path

import pytest

from pythemesync.models import ShopTarget, SyncOptions


class InlineExecutor(Executor):
    """Executor that runs submitted work immediately in the caller's thread."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs):
        self.submitted += 1
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)
        return future


@pytest.fixture
def inline_executor():
    """Provide an executor that runs work synchronously."""
    return InlineExecutor()


@pytest.fixture
def shop_dir(tmp_path):
    """Create a shop directory with one theme."""
    theme = tmp_path / "shop" / "123"
    for name in ("assets", "templates"):
        (theme / name).mkdir(parents=True)
    return tmp_path / "shop"


@pytest.fixture
def make_target(shop_dir):
    """Factory for ShopTargets rooted at ``shop_dir``."""

    def factory(directory: Path = None, **options) -> ShopTarget:
        return ShopTarget(
            name="my-shop",
            api_key="test_key",
            password="test_password",
            directory=directory or shop_dir,
            options=SyncOptions(**options),
        )

    return factory
