import os
import pytest
import tempfile

import busline
import fixturebus


@pytest.fixture
def settings():
    """ Short timeouts, so a broken test fails instead of hanging.
    """

    values = dict()
    values['timeout'] = 5.0
    values['auth_timeout'] = 2.0

    return busline.config.Settings(values)


@pytest.fixture
def socket_dir(tmp_path_factory):

    # Unix socket paths are limited to ~100 bytes, which a deeply nested
    # tmp_path can exceed.

    base = tmp_path_factory.mktemp('bus')
    if len(str(base)) > 80:
        base = tempfile.mkdtemp(prefix='busline-')

    return base


@pytest.fixture
def run_bus(socket_dir):

    bus = fixturebus.FixtureBus(os.path.join(str(socket_dir), 'bus'))

    yield bus

    bus.close()


@pytest.fixture
def connection(run_bus, settings):

    connection = busline.open_session(run_bus.address, settings)
    connection.initialize()

    yield connection

    connection.close()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
