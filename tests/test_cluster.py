"""Tests for greenops.cluster."""

from __future__ import annotations

import logging

import httpx
import pytest
from pydantic import ValidationError

from greenops.client import ApiClient
from greenops.cluster import Cluster
from greenops.context import Context
from greenops.errors import ApiError
from greenops.lifecycle import Ensure
from greenops.resource import _resource_registry

from .conftest import ADDRESS, ORG, TOKEN


class TestClusterModel:
    def test_registered_as_cluster(self):
        assert _resource_registry["cluster"] is Cluster

    def test_defaults(self):
        c = Cluster(name="team-a")
        assert c.rotate is False
        assert c.description == ""
        assert c.apikey == ""
        assert c.id == ""
        assert c.tracked is False

    def test_name_required(self):
        with pytest.raises(ValidationError):
            Cluster()

    def test_name_not_empty(self):
        with pytest.raises(ValidationError):
            Cluster(name="")

    def test_apikey_hidden_from_repr(self):
        c = Cluster(name="team-a", apikey="K1")
        assert "K1" not in repr(c)

    def test_label_is_name(self):
        assert Cluster(name="team-a").label == "team-a"

    def test_name_change_requires_replacement(self):
        c = Cluster(name="team-a", id="team-a")
        with pytest.raises(ValueError, match="replaced"):
            c.name = "team-b"

    def test_name_change_allowed_before_tracking(self):
        c = Cluster(name="team-a")
        c.name = "team-b"
        assert c.name == "team-b"

    def test_other_fields_mutable_when_tracked(self):
        c = Cluster(name="team-a", id="team-a")
        c.rotate = True
        c.description = "notes"
        assert c.rotate is True


class TestCreate:
    def test_sets_identity_and_key(self, ctx, service):
        c = Cluster(name="team-a")
        c.create(ctx)
        assert c.id == "team-a"
        assert c.apikey == service.keys["team-a"]

    def test_description_not_sent(self, ctx, service):
        Cluster(name="team-a", description="prod cluster").create(ctx)
        assert service.requests[-1].content == b""

    def test_transport_error_leaves_identity_unset(self, provider):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with ApiClient(ADDRESS, ORG, TOKEN, transport=httpx.MockTransport(handler)) as api:
            c = Cluster(name="team-a")
            with pytest.raises(httpx.ConnectError):
                c.create(Context(target=provider, client=api))
        assert c.id == ""
        assert c.apikey == ""

    def test_followed_by_exists(self, ctx):
        c = Cluster(name="team-a")
        c.create(ctx)
        assert c.exists(ctx) is True

    def test_serves_pending_rotate(self, ctx, service):
        c = Cluster(name="team-a", rotate=True)
        c.create(ctx)
        assert c.rotate is False
        assert c.snapshot()["rotated"] is True
        assert len(service.mutations) == 1


class TestRead:
    def test_confirms_identity(self, ctx, service):
        service.keys["team-a"] = "K1"
        c = Cluster(name="team-a")
        c.read(ctx)
        assert c.id == "team-a"

    def test_does_not_refresh_apikey(self, ctx, service):
        service.keys["team-a"] = "K-remote"
        c = Cluster(name="team-a", id="team-a", apikey="K-local")
        c.read(ctx)
        assert c.apikey == "K-local"

    def test_clears_identity_when_gone(self, ctx):
        c = Cluster(name="team-a", id="team-a", apikey="K1")
        c.read(ctx)
        assert c.id == ""
        assert c.apikey == "K1"

    def test_issues_only_a_get(self, ctx, service):
        Cluster(name="team-a").read(ctx)
        assert service.mutations == []


class TestUpdate:
    def test_noop_without_rotate(self, ctx, service):
        service.keys["team-a"] = "K1"
        c = Cluster(name="team-a", id="team-a", apikey="K1")
        c.update(ctx)
        assert service.requests == []
        assert c.apikey == "K1"

    def test_rotate_changes_key(self, ctx):
        c = Cluster(name="team-a")
        c.create(ctx)
        before = c.apikey
        c.rotate = True
        c.update(ctx)
        assert c.apikey != before
        assert c.id == "team-a"

    def test_rotate_is_one_shot(self, ctx, service):
        c = Cluster(name="team-a")
        c.create(ctx)
        c.rotate = True
        c.update(ctx)
        assert c.rotate is False
        count = len(service.requests)
        c.update(ctx)
        assert len(service.requests) == count

    def test_rotate_failure_keeps_flag(self, ctx):
        c = Cluster(name="ghost", id="ghost", rotate=True, apikey="K0")
        with pytest.raises(ApiError):
            c.update(ctx)
        assert c.rotate is True
        assert c.apikey == "K0"


    def test_dry_run_without_rotate_is_quiet(self, provider, client, service, caplog):
        service.keys["team-a"] = "K1"
        ctx = Context(target=provider, client=client, dry_run=True)
        with caplog.at_level(logging.INFO, logger="greenops.lifecycle"):
            Ensure(Cluster(name="team-a"))(ctx)
        assert "Would update" not in caplog.text

    def test_dry_run_with_rotate_reports_update(self, provider, client, service, caplog):
        service.keys["team-a"] = "K1"
        ctx = Context(target=provider, client=client, dry_run=True)
        with caplog.at_level(logging.INFO, logger="greenops.lifecycle"):
            Ensure(Cluster(name="team-a", rotate=True))(ctx)
        assert "Would update team-a" in caplog.text
        assert service.mutations == []


class TestDelete:
    def test_clears_identity(self, ctx, service):
        c = Cluster(name="team-a")
        c.create(ctx)
        c.delete(ctx)
        assert c.id == ""
        assert "team-a" not in service.keys

    def test_followed_by_exists(self, ctx):
        c = Cluster(name="team-a")
        c.create(ctx)
        c.delete(ctx)
        assert c.exists(ctx) is False

    def test_error_body_surfaces(self, ctx):
        c = Cluster(name="ghost", id="ghost")
        with pytest.raises(ApiError) as exc_info:
            c.delete(ctx)
        assert str(exc_info.value) == "cluster ghost not found"
        assert c.id == "ghost"


class TestExists:
    def test_never_created(self, ctx):
        assert Cluster(name="team-a").exists(ctx) is False

    def test_does_not_mutate(self, ctx, service):
        service.keys["team-a"] = "K1"
        c = Cluster(name="team-a")
        assert c.exists(ctx) is True
        assert c.id == ""
        assert c.apikey == ""


class TestImport:
    def test_adopts_identity_without_requests(self, service):
        c = Cluster(name="placeholder")
        c.import_state("team-a")
        assert c.id == "team-a"
        assert c.name == "team-a"
        assert service.requests == []

    def test_read_after_import(self, ctx, service):
        service.keys["team-a"] = "K1"
        c = Cluster(name="team-a")
        c.import_state("team-a")
        c.read(ctx)
        assert c.tracked is True


class TestState:
    def test_snapshot_holds_identity_and_key(self, ctx):
        c = Cluster(name="team-a")
        c.create(ctx)
        assert c.snapshot() == {"id": "team-a", "apikey": c.apikey, "rotated": False}

    def test_outputs_are_computed_fields(self):
        assert Cluster(name="team-a", apikey="K1").outputs() == {"apikey": "K1"}

    def test_restore_reloads_key(self):
        c = Cluster(name="team-a")
        c.restore({"id": "team-a", "apikey": "K1", "rotated": False})
        assert c.id == "team-a"
        assert c.apikey == "K1"

    def test_restore_marks_served_rotate(self):
        c = Cluster(name="team-a", rotate=True)
        c.restore({"id": "team-a", "apikey": "K2", "rotated": True})
        assert c.rotate is False
        assert c.needs_update() is False
        assert c.snapshot()["rotated"] is True

    def test_restore_keeps_new_rotate_request(self):
        c = Cluster(name="team-a", rotate=True)
        c.restore({"id": "team-a", "apikey": "K1", "rotated": False})
        assert c.rotate is True

    def test_cleared_rotate_resets_marker(self):
        c = Cluster(name="team-a")
        c.restore({"id": "team-a", "apikey": "K2", "rotated": True})
        assert c.snapshot()["rotated"] is False


class TestScenario:
    def test_create_read_delete_exists(self, provider):
        listing: list[dict[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if request.method == "POST" and path.endswith("/team-a/apikeys/generate"):
                listing.append({"name": "team-a", "apiKey": "K1"})
                return httpx.Response(200, json={"apiKey": "K1"})
            if request.method == "GET":
                return httpx.Response(200, json=listing)
            if request.method == "DELETE":
                listing.clear()
                return httpx.Response(200)
            return httpx.Response(404)

        with ApiClient(ADDRESS, ORG, TOKEN, transport=httpx.MockTransport(handler)) as api:
            ctx = Context(target=provider, client=api)
            c = Cluster(name="team-a")

            c.create(ctx)
            assert c.id == "team-a"
            assert c.apikey == "K1"

            c.read(ctx)
            assert c.id == "team-a"
            assert c.apikey == "K1"

            c.delete(ctx)
            assert c.id == ""

            assert c.exists(ctx) is False
