import pytest

from authorino.health import Handler


class FakeHealthy:
    def ready(self, includes, excludes, verbose):
        return None


class FakeUnhealthy:
    def ready(self, includes, excludes, verbose):
        raise RuntimeError("unhealthy")


class FakeFiltered:
    def __init__(self):
        self.checked = []
        self.verbose = None

    def ready(self, includes, excludes, verbose):
        self.verbose = verbose
        self.checked = includes
        if "opt-in-unhealthy" in includes:
            raise RuntimeError("opt-in-unhealthy not ready")
        if "opt-out-unhealthy" not in excludes:
            self.checked.append("opt-out-unhealthy")
            raise RuntimeError("opt-out-unhealthy not ready")
        if "opt-out-healthy" not in excludes:
            self.checked.append("opt-out-healthy")


def test_observe_healthy():
    h = Handler("foo", [FakeHealthy()])
    assert h.handle_readyz_check("http://localhost:8081/readyz") is None


def test_observe_unhealthy():
    h = Handler("foo", [FakeUnhealthy()])
    with pytest.raises(RuntimeError, match="unhealthy"):
        h.handle_readyz_check("http://localhost:8081/readyz")


def test_observe_healthy_unhealthy():
    h = Handler("foo")
    h.observe(FakeHealthy(), FakeUnhealthy())
    with pytest.raises(RuntimeError, match="unhealthy"):
        h.handle_readyz_check("http://localhost:8081/readyz")


def test_observe_include_exclude():
    o = FakeFiltered()
    h = Handler("foo", [o])
    h.handle_readyz_check(
        "http://localhost:8081/readyz?include=opt-in-healthy&exclude=opt-out-unhealthy"
    )
    assert o.checked == ["opt-in-healthy", "opt-out-healthy"]


def test_observe_include_unhealthy():
    o = FakeFiltered()
    h = Handler("foo", [o])
    with pytest.raises(RuntimeError, match="opt-in-unhealthy not ready"):
        h.handle_readyz_check("http://localhost:8081/readyz?include=opt-in-unhealthy")
    assert o.checked == ["opt-in-unhealthy"]


def test_observe_exclude_unhealthy():
    o = FakeFiltered()
    h = Handler("foo", [o])
    h.handle_readyz_check("http://localhost:8081/readyz?exclude=opt-out-unhealthy")
    assert o.checked == ["opt-out-healthy"]


def test_observe_include_implicit():
    o = FakeFiltered()
    h = Handler("foo", [o])
    with pytest.raises(RuntimeError, match="opt-out-unhealthy not ready"):
        h.handle_readyz_check("http://localhost:8081/readyz/foo")
    assert o.checked == ["foo", "opt-out-unhealthy"]


def test_verbose_flag_passed_along():
    o = FakeFiltered()
    h = Handler("foo", [o])
    h.handle_readyz_check("http://localhost:8081/readyz?verbose&exclude=opt-out-unhealthy")
    assert o.verbose is True