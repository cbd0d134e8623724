"""Tests for the sync engine."""

import base64
import json
from dataclasses import replace
from pathlib import Path
from unittest.mock import Mock, patch

import httpx
import pytest

from pythemesync.api import ShopifyClient
from pythemesync.exceptions import (
    ThemeSyncAPIError,
    ThemeSyncFileError,
    ThemeSyncNetworkError,
)
from pythemesync.output import OutputFormatter
from pythemesync.sync import (
    ChangeNotification,
    EntryKind,
    EntryMetadata,
    OperationKind,
    SyncerState,
    SyncRunner,
    ThemeSyncer,
)


def created(path: Path) -> ChangeNotification:
    return ChangeNotification(
        path=path, current=EntryMetadata.from_path(path), previous=None
    )


def modified(path: Path) -> ChangeNotification:
    metadata = EntryMetadata.from_path(path)
    return ChangeNotification(path=path, current=metadata, previous=metadata)


def removed(path: Path, kind: EntryKind = EntryKind.FILE) -> ChangeNotification:
    previous = EntryMetadata(kind=kind)
    return ChangeNotification(path=path, current=previous.removed(), previous=previous)


class TestThemeSyncerPlan:
    """Test notification classification."""

    @pytest.fixture
    def syncer(self, make_target, inline_executor):
        client = Mock(spec=ShopifyClient)
        return ThemeSyncer(make_target(), client=client, executor=inline_executor)

    def test_initial_state(self, syncer):
        assert syncer.state == SyncerState.INITIALIZING

    def test_walk_complete_switches_to_watching(self, syncer):
        """Test the control event starts the watching state without requests."""
        assert syncer.plan(ChangeNotification.walk_complete()) == []
        assert syncer.state == SyncerState.WATCHING

    def test_root_is_ignored(self, syncer, shop_dir):
        """Test the shop directory itself is never synced."""
        assert syncer.plan(created(shop_dir)) == []
        assert syncer.plan(removed(shop_dir, EntryKind.DIRECTORY)) == []

    def test_new_file_creates(self, syncer, shop_dir):
        path = shop_dir / "123" / "assets" / "app.js"
        path.write_text("var a = 1;")

        operations = syncer.plan(created(path))

        assert len(operations) == 1
        assert operations[0].kind == OperationKind.CREATE
        assert operations[0].path == path
        assert operations[0].ref.theme_id == "123"
        assert operations[0].ref.asset_key == "assets/app.js"
        assert operations[0].ref.request_uri == "themes/123/assets.json"

    def test_dot_file_ignored(self, syncer, shop_dir):
        path = shop_dir / "123" / "assets" / ".DS_Store"
        path.write_text("x")

        assert syncer.plan(created(path)) == []
        assert syncer.plan(modified(path)) == []
        assert syncer.plan(removed(path)) == []

    def test_blacklisted_file_ignored(self, syncer, shop_dir):
        path = shop_dir / "123" / "assets" / "Thumbs.db"
        path.write_text("x")

        assert syncer.plan(created(path)) == []
        assert syncer.plan(removed(path)) == []

    def test_new_directory_uploads_contents(self, syncer, shop_dir):
        """Test a new theme directory yields one CREATE per file inside."""
        templates = shop_dir / "123" / "templates"
        (templates / "index.liquid").write_text("index")
        (templates / "product.liquid").write_text("product")

        operations = syncer.plan(created(templates))

        assert [op.kind for op in operations] == [OperationKind.CREATE] * 2
        assert sorted(op.ref.asset_key for op in operations) == [
            "templates/index.liquid",
            "templates/product.liquid",
        ]

    def test_new_directory_includes_nested_files(self, syncer, shop_dir):
        templates = shop_dir / "123" / "templates"
        (templates / "customers").mkdir()
        (templates / "customers" / "account.liquid").write_text("account")
        (templates / "index.liquid").write_text("index")
        (templates / ".hidden").write_text("hidden")
        (templates / "Thumbs.db").write_text("junk")

        operations = syncer.plan(created(templates))

        assert sorted(op.ref.asset_key for op in operations) == [
            "templates/customers/account.liquid",
            "templates/index.liquid",
        ]

    def test_empty_directory_yields_nothing(self, syncer, shop_dir):
        snippets = shop_dir / "123" / "snippets"
        snippets.mkdir()

        assert syncer.plan(created(snippets)) == []

    def test_dot_directory_ignored(self, syncer, shop_dir):
        git = shop_dir / "123" / ".git"
        git.mkdir()
        (git / "config").write_text("[core]")

        assert syncer.plan(created(git)) == []

    def test_directory_outside_layout_ignored(self, syncer, shop_dir):
        other = shop_dir / "123" / "node_modules"
        other.mkdir()
        (other / "lib.js").write_text("x")

        assert syncer.plan(created(other)) == []

    def test_removed_file_deletes(self, syncer, shop_dir):
        """Test removals map to the same key the file had while present."""
        path = shop_dir / "123" / "assets" / "logo.png"
        path.write_bytes(b"png")
        create_key = syncer.plan(created(path))[0].ref.asset_key
        path.unlink()

        operations = syncer.plan(removed(path))

        assert len(operations) == 1
        assert operations[0].kind == OperationKind.DELETE
        assert operations[0].ref.asset_key == create_key
        assert operations[0].ref.request_uri == (
            "themes/123/assets.json?asset[key]=assets%2Flogo.png"
        )

    def test_removed_directory_is_not_deleted(self, syncer, shop_dir):
        """Test directories are never deleted remotely."""
        assert syncer.plan(removed(shop_dir / "123" / "assets", EntryKind.DIRECTORY)) == []

    def test_changed_file_modifies(self, syncer, shop_dir):
        path = shop_dir / "123" / "assets" / "theme.css"
        path.write_text("body {}")

        operations = syncer.plan(modified(path))

        assert len(operations) == 1
        assert operations[0].kind == OperationKind.MODIFY
        assert operations[0].ref.asset_key == "assets/theme.css"

    def test_changed_directory_ignored(self, syncer, shop_dir):
        assert syncer.plan(modified(shop_dir / "123" / "assets")) == []

    def test_incomplete_notification_ignored(self, syncer, shop_dir):
        notification = ChangeNotification(
            path=shop_dir / "123" / "assets" / "a.js", current=None, previous=None
        )
        assert syncer.plan(notification) == []


class TestThemeSyncerDispatch:
    """Test dispatching operations and reporting results."""

    @pytest.fixture
    def client(self):
        return Mock(spec=ShopifyClient)

    @pytest.fixture
    def callback(self):
        return Mock()

    @pytest.fixture
    def syncer(self, make_target, client, callback, inline_executor):
        return ThemeSyncer(
            make_target(), client=client, callback=callback, executor=inline_executor
        )

    def test_create_reports_success(self, syncer, client, callback, shop_dir):
        path = shop_dir / "123" / "assets" / "app.js"
        path.write_text("var a = 1;")
        client.create.return_value = {"asset": {"key": "assets/app.js"}}

        futures = syncer.handle(created(path))

        assert len(futures) == 1
        result = futures[0].result()
        assert result.ok
        assert result.data == {"asset": {"key": "assets/app.js"}}
        callback.assert_called_once_with(
            None, {"asset": {"key": "assets/app.js"}}, f"{path} created"
        )

    def test_modify_calls_modify(self, syncer, client, callback, shop_dir):
        path = shop_dir / "123" / "assets" / "app.js"
        path.write_text("var a = 1;")

        syncer.handle(modified(path))

        client.modify.assert_called_once()
        ref, payload = client.modify.call_args[0]
        assert ref.asset_key == "assets/app.js"
        assert base64.b64decode(payload.original) == b"var a = 1;"
        assert callback.call_args[0][2] == f"{path} modified"

    def test_application_error(self, syncer, client, callback, shop_dir):
        path = shop_dir / "123" / "assets" / "logo.png"
        error = ThemeSyncAPIError("StatusCode: 404", status_code=404)
        client.delete.side_effect = error

        result = syncer.handle(removed(path))[0].result()

        assert result.application_error is error
        assert result.transport_error is None
        callback.assert_called_once_with(error, None, f"{path} deleted")

    def test_transport_error(self, syncer, client, callback, shop_dir):
        path = shop_dir / "123" / "assets" / "logo.png"
        error = ThemeSyncNetworkError("Network error: refused")
        client.delete.side_effect = error

        result = syncer.handle(removed(path))[0].result()

        assert result.transport_error is error
        assert result.application_error is None
        callback.assert_called_once_with(error, None, f"{path} deleted")

    def test_unreadable_file_fails_only_that_operation(
        self, syncer, client, callback, shop_dir
    ):
        path = shop_dir / "123" / "assets" / "vanished.js"
        path.write_text("x")
        notification = created(path)
        path.unlink()

        result = syncer.handle(notification)[0].result()

        assert isinstance(result.local_error, ThemeSyncFileError)
        client.create.assert_not_called()
        assert callback.call_count == 1

    def test_unexpected_error_is_reported_once(self, syncer, client, callback, shop_dir):
        path = shop_dir / "123" / "assets" / "logo.png"
        client.delete.side_effect = RuntimeError("boom")

        future = syncer.handle(removed(path))[0]

        assert isinstance(future.exception(), RuntimeError)
        callback.assert_called_once()
        assert isinstance(callback.call_args[0][0], RuntimeError)

    def test_directory_dispatches_each_file(
        self, syncer, client, callback, shop_dir, inline_executor
    ):
        templates = shop_dir / "123" / "templates"
        (templates / "index.liquid").write_text("index")
        (templates / "product.liquid").write_text("product")

        futures = syncer.handle(created(templates))

        assert len(futures) == 2
        assert client.create.call_count == 2
        assert callback.call_count == 2
        assert inline_executor.submitted == 2

    def test_callback_failure_is_contained(self, syncer, client, callback, shop_dir):
        path = shop_dir / "123" / "assets" / "logo.png"
        callback.side_effect = RuntimeError("display broke")

        futures = syncer.handle(removed(path))

        assert futures[0].result().ok

    def test_handle_does_not_wait(self, make_target, client, shop_dir):
        """Test handle returns before the request completes."""
        path = shop_dir / "123" / "assets" / "logo.png"
        executor = Mock()
        syncer = ThemeSyncer(make_target(), client=client, executor=executor)

        futures = syncer.handle(removed(path))

        executor.submit.assert_called_once()
        assert futures == [executor.submit.return_value]
        client.delete.assert_not_called()

    def test_thread_pool(self, make_target, client, callback, shop_dir):
        """Test the default pool runs every operation and reports it once."""
        syncer = ThemeSyncer(make_target(), client=client, callback=callback)
        paths = [shop_dir / "123" / "assets" / f"file{i}.js" for i in range(5)]

        for path in paths:
            syncer.handle(removed(path))
        syncer.close()

        assert client.delete.call_count == 5
        assert callback.call_count == 5


class TestScenarios:
    """End-to-end scenarios against a mocked Shopify."""

    @pytest.fixture
    def requests(self):
        return []

    def _syncer(self, target, requests, inline_executor):
        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"asset": {}})

        client = ShopifyClient(
            target, transport=httpx.MockTransport(handler), executor=inline_executor
        )
        return ThemeSyncer(target, client=client, executor=inline_executor)

    def test_minified_script_upload(self, make_target, requests, inline_executor, shop_dir):
        source = b"function f() {\n    return 1;\n}\n"
        path = shop_dir / "123" / "assets" / "app.js"
        path.write_bytes(source)
        syncer = self._syncer(make_target(compress_js=True), requests, inline_executor)

        syncer.handle(created(path))

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "PUT"
        assert request.url.path == "/admin/themes/123/assets.json"
        body = json.loads(request.content)
        assert body["asset"]["key"] == "assets/app.js"
        uploaded = base64.b64decode(body["asset"]["attachment"])
        assert len(uploaded) < len(source)
        assert uploaded.startswith(b"function f(")

    def test_compact_script_upload(self, make_target, requests, inline_executor, shop_dir):
        path = shop_dir / "123" / "assets" / "app.js"
        path.write_bytes(b"function f(){return 1;}")
        syncer = self._syncer(make_target(compress_js=True), requests, inline_executor)

        syncer.handle(created(path))

        body = json.loads(requests[0].content)
        assert body["asset"]["attachment"] == base64.b64encode(
            b"function f(){return 1}"
        ).decode("ascii")

    def test_malformed_script_uploads_original(
        self, make_target, requests, inline_executor, shop_dir
    ):
        source = b"function f( {"
        path = shop_dir / "123" / "assets" / "app.js"
        path.write_bytes(source)
        syncer = self._syncer(make_target(compress_js=True), requests, inline_executor)

        syncer.handle(created(path))

        body = json.loads(requests[0].content)
        assert base64.b64decode(body["asset"]["attachment"]) == source

    def test_delete_request(self, make_target, requests, inline_executor, shop_dir):
        path = shop_dir / "123" / "assets" / "logo.png"
        syncer = self._syncer(make_target(), requests, inline_executor)

        syncer.handle(removed(path))

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "DELETE"
        assert request.url.path == "/admin/themes/123/assets.json"
        assert b"asset%5Bkey%5D=assets%2Flogo.png" in request.url.query or (
            b"asset[key]=assets%2Flogo.png" in request.url.query
        )
        assert request.headers["Content-Length"] == "0"
        assert request.content == b""

    def test_new_template_directory(self, make_target, requests, inline_executor, shop_dir):
        templates = shop_dir / "123" / "templates"
        (templates / "index.liquid").write_text("index")
        (templates / "product.liquid").write_text("product")
        git = shop_dir / "123" / ".git"
        git.mkdir()
        (git / "HEAD").write_text("ref")
        syncer = self._syncer(make_target(), requests, inline_executor)

        syncer.handle(created(templates))
        syncer.handle(created(git))

        keys = sorted(json.loads(r.content)["asset"]["key"] for r in requests)
        assert keys == ["templates/index.liquid", "templates/product.liquid"]


class TestSyncRunner:
    """Test running several shops."""

    @pytest.fixture
    def output(self):
        output = Mock(spec=OutputFormatter)
        output.quiet = True
        return output

    def test_missing_directory_is_reported(self, make_target, output, tmp_path):
        target = make_target(directory=tmp_path / "missing")
        runner = SyncRunner([target], output=output)

        assert runner.start() == 0
        output.error.assert_called_once()
        assert "does not exist" in output.error.call_args[0][0]

    def test_bad_shop_does_not_stop_others(self, make_target, output, tmp_path):
        good = make_target()
        bad = make_target(directory=tmp_path / "missing")

        with patch("pythemesync.sync.engine.TreeWatcher") as mock_watcher_class:
            runner = SyncRunner([bad, good], output=output)
            assert runner.start() == 1

        mock_watcher_class.return_value.start.assert_called_once()
        assert mock_watcher_class.call_args[0][0] == good.directory
        assert mock_watcher_class.call_args[1]["interval"] == 500

    def test_watcher_failure_does_not_stop_others(self, make_target, output):
        """Test an OS error while starting one shop's watcher is contained."""
        first = replace(make_target(), name="first-shop")
        second = replace(make_target(), name="second-shop")
        failing, working = Mock(), Mock()
        failing.start.side_effect = OSError(28, "inotify watch limit reached")

        with patch(
            "pythemesync.sync.engine.TreeWatcher", side_effect=[failing, working]
        ), patch.object(ThemeSyncer, "close", autospec=True) as mock_close:
            runner = SyncRunner([first, second], output=output)
            assert runner.start() == 1

        working.start.assert_called_once()
        assert runner.watchers == [working]
        assert [syncer.target.name for syncer in runner.syncers] == ["second-shop"]
        mock_close.assert_called_once()
        assert mock_close.call_args[0][0].target.name == "first-shop"
        output.error.assert_called_once()
        assert "first-shop" in output.error.call_args[0][0]
        assert "inotify watch limit reached" in output.error.call_args[0][0]

    def test_handler_errors_are_isolated(self, make_target, output):
        target = make_target()
        runner = SyncRunner([target], output=output)
        syncer = Mock()
        syncer.handle.side_effect = RuntimeError("boom")

        handle = runner._guarded(target, syncer)
        handle(ChangeNotification.walk_complete())

        output.error.assert_called_once()
        assert "my-shop" in output.error.call_args[0][0]

    def test_walk_complete_announced(self, make_target, output):
        target = make_target()
        runner = SyncRunner([target], output=output)
        syncer = Mock()
        syncer.handle.return_value = []

        runner._guarded(target, syncer)(ChangeNotification.walk_complete())

        output.success.assert_called_once()
        assert "Now watching" in output.success.call_args[0][0]

    def test_stop(self, make_target, output):
        with patch("pythemesync.sync.engine.TreeWatcher") as mock_watcher_class:
            runner = SyncRunner([make_target()], output=output)
            runner.start()
            mock_watcher_class.return_value.is_alive.return_value = True
            assert runner.is_running()
            runner.stop()

        mock_watcher_class.return_value.stop.assert_called_once()
        assert not runner.is_running()
