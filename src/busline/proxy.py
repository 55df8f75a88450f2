""" Thin proxies for remote objects. An :class:`Object` is identified by its
    destination and path and caches the introspection fetched when it was
    created; an :class:`Interface` is a named view into that cache.
"""

from .protocol.introspection import Introspect


class Object:
    """ A remote object. The *introspection* is obtained once, at creation
        time, by :func:`busline.connection.Connection.get_object`; if that
        failed the object simply has no interfaces.
    """

    def __init__(self, connection, destination, path, introspection=None):

        if introspection is None:
            introspection = Introspect.empty()

        self.connection = connection
        self.destination = destination
        self.path = path
        self.introspection = introspection


    def __repr__(self):
        return 'Object(%r, %r, interfaces=%r)' % (self.destination, self.path, self.interfaces)


    @property
    def interfaces(self):
        return sorted(self.introspection.interfaces)


    def interface(self, name):
        """ Return an :class:`Interface` view for *name*, or None if the
            cached introspection does not contain it.
        """

        data = self.introspection.interface(name)
        if data is None:
            return None

        return Interface(self, name, data)


# end of class Object



class Interface:

    def __init__(self, obj, name, data):
        self.obj = obj
        self.name = name
        self.data = data


    def __repr__(self):
        return 'Interface(%r, %r)' % (self.obj.path, self.name)


    def method(self, name):
        return self.data.method(name)


    def call(self, name, *args, **kwargs):
        """ Shorthand for :func:`busline.connection.Connection.call_method`
            on the connection that created this interface's object.
        """

        return self.obj.connection.call_method(self, name, *args, **kwargs)


# end of class Interface


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
