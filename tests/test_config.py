import os

import pytest

import busline


def test_defaults(monkeypatch, tmp_path):

    monkeypatch.setenv('BUSLINE_HOME', str(tmp_path))

    settings = busline.config.load()

    assert settings.timeout == 25.0
    assert settings.max_buffer == 134217728
    assert settings.session_variable == 'DBUS_SESSION_BUS_ADDRESS'
    assert settings.system_bus_address == 'unix:path=/var/run/dbus/system_bus_socket'


def test_directory(monkeypatch):

    monkeypatch.setenv('BUSLINE_HOME', '/somewhere/else')
    assert busline.config.directory() == '/somewhere/else'

    monkeypatch.delenv('BUSLINE_HOME')
    monkeypatch.setenv('HOME', '/home/someone')
    assert busline.config.directory() == os.path.join('/home/someone', '.busline')

    monkeypatch.delenv('HOME')
    with pytest.raises(RuntimeError):
        busline.config.directory()

    with pytest.raises(ValueError):
        busline.config.directory('relative/path')


def test_file_and_environment(monkeypatch, tmp_path):

    target = tmp_path / busline.config.filename
    target.write_bytes(b'{"timeout": 3, "max_line": 512}')

    monkeypatch.setenv('BUSLINE_HOME', str(tmp_path))
    monkeypatch.setenv('BUSLINE_READ_SIZE', '1024')

    settings = busline.config.load()

    assert settings.timeout == 3.0
    assert settings.max_line == 512
    assert settings.read_size == 1024

    # The environment wins over the file.

    monkeypatch.setenv('BUSLINE_TIMEOUT', '0')
    settings = busline.config.load()
    assert settings.timeout is None


def test_invalid(monkeypatch, tmp_path):

    target = tmp_path / busline.config.filename
    target.write_bytes(b'{"no_such_key": 1}')
    monkeypatch.setenv('BUSLINE_HOME', str(tmp_path))

    with pytest.raises(ValueError):
        busline.config.load()

    target.write_bytes(b'[1, 2, 3]')
    with pytest.raises(ValueError):
        busline.config.load()

    # orjson reports malformed documents as a ValueError subclass.

    target.write_bytes(b'{"timeout": ')
    with pytest.raises(ValueError):
        busline.config.load()

    with pytest.raises(ValueError):
        busline.config.Settings({'max_buffer': 0})


def test_cache(monkeypatch, tmp_path):

    monkeypatch.setenv('BUSLINE_HOME', str(tmp_path))
    busline.config.clear()

    first = busline.config.get()
    second = busline.config.get()
    assert first is second

    busline.config.clear()
    assert busline.config.get() is not first
    busline.config.clear()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
