import pytest

from soundcheck.hub.collector_registry import CollectorRegistry


class _Collector:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


def test_register_and_list_keep_order():
    registry = CollectorRegistry()
    registry.register("kktix", _Collector())
    registry.register("accupass", _Collector())
    assert registry.list() == ["kktix", "accupass"]


def test_duplicate_registration_fails():
    registry = CollectorRegistry()
    registry.register("kktix", _Collector())
    with pytest.raises(ValueError):
        registry.register("kktix", _Collector())


def test_unknown_collector_lookup():
    with pytest.raises(KeyError):
        CollectorRegistry().get("ibon")


def test_close_all():
    registry = CollectorRegistry()
    collector = _Collector()
    registry.register("kktix", collector)
    registry.close_all()
    assert collector.closed


def test_unknown_source_error_lists_registered_sources():
    registry = CollectorRegistry()
    registry.register("kktix", _Collector())
    with pytest.raises(KeyError, match="registered: kktix"):
        registry.get("accupass")
