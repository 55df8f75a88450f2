''' Wrapper module around :mod:`orjson` providing the equivalent of
    :func:`json.loads`, used to parse the configuration file.
'''

import orjson


loads = orjson.loads

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
