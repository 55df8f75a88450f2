""" Local configuration for busline. The built-in defaults can be overridden
    by a ``config.json`` file in the configuration :func:`directory`, and
    individual keys can be overridden again by ``BUSLINE_<KEY>`` environment
    variables.
"""

import os
import threading

from . import json


defaults = dict()
defaults['timeout'] = 25.0
defaults['auth_timeout'] = 5.0
defaults['max_line'] = 16384
defaults['max_buffer'] = 134217728
defaults['read_size'] = 4096
defaults['system_bus_address'] = 'unix:path=/var/run/dbus/system_bus_socket'
defaults['session_variable'] = 'DBUS_SESSION_BUS_ADDRESS'

filename = 'config.json'

_cache = None
_cache_lock = threading.Lock()


class Settings:
    """ A thin attribute-style view of the merged configuration values.
        Every key in :data:`defaults` is present as an attribute.
    """

    def __init__(self, values=None):

        merged = dict(defaults)

        if values:
            for key,value in values.items():
                if key not in defaults:
                    raise ValueError('unknown configuration key: ' + repr(key))
                merged[key] = value

        for key,value in merged.items():
            setattr(self, key, _convert(key, value))


    def __repr__(self):
        return 'config.Settings: ' + repr(vars(self))


    def replace(self, **kwargs):
        """ Return a new :class:`Settings` with the supplied keys replaced.
        """

        values = dict(vars(self))
        values.update(kwargs)
        return Settings(values)


# end of class Settings



def _convert(key, value):
    """ Coerce a configuration value to the type of its default. Environment
        variables always arrive as strings; JSON values mostly arrive with
        the right type already.
    """

    default = defaults[key]

    if value is None:
        if key == 'timeout':
            return None
        raise ValueError('configuration key %s cannot be null' % (repr(key)))

    if isinstance(default, float):
        value = float(value)
        if key == 'timeout' and value <= 0:
            return None
        return value

    if isinstance(default, int):
        value = int(value)
        if value <= 0:
            raise ValueError('configuration key %s must be positive' % (repr(key)))
        return value

    return str(value)



def directory(default=None):
    """ Return the directory location where the configuration file is
        expected to live. The default location is ``$HOME/.busline``, this
        can be overridden by setting the ``BUSLINE_HOME`` environment
        variable, or by passing an absolute *default* path.
    """

    if default is not None:
        if os.path.isabs(default) == False:
            raise ValueError('the default directory must be an absolute path')
        return default

    try:
        found = os.environ['BUSLINE_HOME']
    except KeyError:
        pass
    else:
        return found

    try:
        home = os.environ['HOME']
    except KeyError:
        raise RuntimeError('BUSLINE_HOME and HOME environment variables not set, cannot determine busline configuration directory')

    return os.path.join(home, '.busline')



def load(base=None):
    """ Read the configuration file, if any, and apply any environment
        variable overrides. Returns a new :class:`Settings` instance; use
        :func:`get` for the cached instance.
    """

    values = dict()

    try:
        base = directory(base)
    except RuntimeError:
        base = None

    if base is not None:
        target = os.path.join(base, filename)
        if os.path.exists(target):
            with open(target, 'rb') as handle:
                raw_json = handle.read()
            loaded = json.loads(raw_json)
            if isinstance(loaded, dict) == False:
                raise ValueError('configuration file must contain a JSON object: ' + target)
            values.update(loaded)

    for key in defaults.keys():
        variable = 'BUSLINE_' + key.upper()
        try:
            values[key] = os.environ[variable]
        except KeyError:
            continue

    return Settings(values)



def get():
    """ Return the cached :class:`Settings`, loading it on first use.
    """

    global _cache

    with _cache_lock:
        if _cache is None:
            _cache = load()
        return _cache



def clear():
    """ Discard the cached :class:`Settings`; the next :func:`get` call will
        reload the configuration.
    """

    global _cache

    with _cache_lock:
        _cache = None


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
