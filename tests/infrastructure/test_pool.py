from types import SimpleNamespace

import pytest
from psycopg.conninfo import conninfo_to_dict
from psycopg_pool import PoolTimeout

from heroku_pg.application.exceptions import ConfigurationError, ParseError, TlsHandshakeError, TransportError
from heroku_pg.domain.trust_policy import NO_ROOT_CERT
from heroku_pg.infrastructure import pool as pool_module
from heroku_pg.infrastructure.pool import close_pool, get_pool


class StubPool:
    """Records how the factory builds and opens the pool."""

    instances = []
    fail_open = False

    def __init__(self, conninfo, **kwargs):
        self.conninfo = conninfo
        self.kwargs = kwargs
        self.open_calls = []
        self.closed = False
        self.close_calls = 0
        StubPool.instances.append(self)

    def open(self, wait=False, timeout=30.0):
        self.open_calls.append((wait, timeout))
        if StubPool.fail_open:
            raise PoolTimeout("pool initialization incomplete after 1.0 sec")

    def close(self):
        self.close_calls += 1
        self.closed = True


@pytest.fixture
def stub_pool(monkeypatch):
    StubPool.instances = []
    StubPool.fail_open = False
    monkeypatch.setattr(pool_module, "ConnectionPool", StubPool)
    return StubPool


def test_get_pool_builds_encrypted_pool(stub_pool, heroku_url):
    pool = get_pool(heroku_url, 20)

    assert isinstance(pool, StubPool)
    options = conninfo_to_dict(pool.conninfo)
    assert options["sslmode"] == "require"
    assert options["sslrootcert"] == NO_ROOT_CERT
    assert options["host"] == "ec2-1-2-3-4.compute-1.amazonaws.com"
    assert pool.kwargs["max_size"] == 20
    assert pool.kwargs["min_size"] == 1
    assert pool.kwargs["open"] is False
    assert pool.open_calls == [(True, 30.0)]
    assert "s3cr3t" not in pool.kwargs["name"]


def test_configure_hook_rejects_plaintext_connections(stub_pool, heroku_url):
    pool = get_pool(heroku_url, 4)
    configure = pool.kwargs["configure"]
    closed = []
    plaintext = SimpleNamespace(pgconn=SimpleNamespace(ssl_in_use=False), close=lambda: closed.append(True))

    with pytest.raises(TlsHandshakeError):
        configure(plaintext)

    assert closed == [True]
    encrypted = SimpleNamespace(pgconn=SimpleNamespace(ssl_in_use=True), close=lambda: closed.append(True))
    configure(encrypted)
    assert closed == [True]


def test_pool_timeout_closes_pool_and_raises_transport_error(stub_pool, heroku_url):
    stub_pool.fail_open = True

    with pytest.raises(TransportError) as excinfo:
        get_pool(heroku_url, 2, timeout=1.0)

    assert stub_pool.instances[0].close_calls == 1
    assert isinstance(excinfo.value.__cause__, PoolTimeout)
    assert excinfo.value.database == "d1a2b3"


@pytest.mark.parametrize("max_size, min_size", [(0, 0), (2, 3), (2, -1)])
def test_invalid_sizes_are_rejected(stub_pool, heroku_url, max_size, min_size):
    with pytest.raises(ConfigurationError):
        get_pool(heroku_url, max_size, min_size=min_size)

    assert stub_pool.instances == []


def test_bad_url_never_builds_a_pool(stub_pool):
    with pytest.raises(ParseError):
        get_pool("mysql://a:b@host/db", 2)

    assert stub_pool.instances == []


def test_close_pool_is_idempotent():
    pool = StubPool("")

    close_pool(pool)
    close_pool(pool)
    close_pool(None)

    assert pool.close_calls == 1


def test_pool_helpers_are_exported_from_the_package():
    import heroku_pg

    assert heroku_pg.get_pool is get_pool
    assert heroku_pg.close_pool is close_pool
    assert "close_pool" in heroku_pg.__all__
