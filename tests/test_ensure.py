"""Tests for the check-then-act ensure helper."""
import logging

import pytest

from gcp_labkit.common.domains.errors import ConnectivityError, ResourceCreationError
from gcp_labkit.common.workflows.ensure import EnsureResult, ensure


class Store:
    def __init__(self, names=()):
        self.names = list(names)
        self.creates = 0

    def list(self):
        return list(self.names)

    def create(self, name):
        self.creates += 1
        self.names.append(name)


class TestEnsure:

    def test_creates_when_absent(self):
        store = Store()
        result = ensure("transit key", "mykey", store.list, lambda: store.create("mykey"))

        assert result is EnsureResult.CREATED
        assert store.names == ["mykey"]

    def test_noop_when_present(self):
        store = Store(["mykey"])
        result = ensure("transit key", "mykey", store.list, lambda: store.create("mykey"))

        assert result is EnsureResult.ALREADY_PRESENT
        assert store.creates == 0

    def test_second_call_creates_nothing(self):
        store = Store()
        first = ensure("policy", "mypolicy", store.list, lambda: store.create("mypolicy"))
        second = ensure("policy", "mypolicy", store.list, lambda: store.create("mypolicy"))

        assert (first, second) == (EnsureResult.CREATED, EnsureResult.ALREADY_PRESENT)
        assert store.creates == 1

    def test_other_names_do_not_count(self):
        store = Store(["otherkey"])
        assert ensure("transit key", "mykey", store.list, lambda: store.create("mykey")) is EnsureResult.CREATED

    def test_accepts_any_iterable(self):
        result = ensure("secret engine", "secret", lambda: {"secret": {}}.keys(), lambda: None)
        assert result is EnsureResult.ALREADY_PRESENT

    def test_creation_failure_is_wrapped(self):
        def boom():
            raise RuntimeError("path is already in use")

        with pytest.raises(ResourceCreationError) as exc_info:
            ensure("secret engine", "transit", lambda: [], boom)

        assert exc_info.value.kind == "secret engine"
        assert exc_info.value.identifier == "transit"
        assert isinstance(exc_info.value.cause, RuntimeError)

    def test_listing_connectivity_failure_is_not_absence(self):
        created = []

        def unreachable():
            raise ConnectivityError("connection refused")

        with pytest.raises(ConnectivityError):
            ensure("auth method", "userpass", unreachable, lambda: created.append(1))

        assert created == []

    def test_connectivity_failure_during_create_propagates(self):
        def unreachable():
            raise ConnectivityError("connection reset")

        with pytest.raises(ConnectivityError):
            ensure("auth method", "userpass", lambda: [], unreachable)

    def test_logs_outcome(self, caplog):
        caplog.set_level(logging.INFO)
        ensure("transit key", "mykey", lambda: ["mykey"], lambda: None)

        assert "transit key 'mykey' already present" in caplog.text
