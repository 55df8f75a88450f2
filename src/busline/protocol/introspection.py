""" Parse the XML document returned by an ``Introspect`` call into queryable
    metadata: which interfaces an object exposes, which methods each
    interface has, and the type signatures of their arguments.
"""

import xml.etree.ElementTree as ElementTree

from ..errors import ProtocolError


class Argument:
    """ One ``<arg>`` element. The *direction* is 'in' or 'out'; method
        arguments default to 'in'.
    """

    def __init__(self, name, type, direction='in'):
        self.name = name
        self.type = type
        self.direction = direction


    def __repr__(self):
        return 'Argument(%r, %r, %r)' % (self.name, self.type, self.direction)


# end of class Argument



class MethodData:

    def __init__(self, name, arguments=()):
        self.name = name
        self.arguments = tuple(arguments)


    def __repr__(self):
        return 'MethodData(%r, in=%r, out=%r)' % (self.name, self.input_signature, self.output_signature)


    @property
    def input_signature(self):
        """ The concatenated type signature of the 'in' arguments; this is
            the signature a call to this method must carry.
        """

        return ''.join(arg.type for arg in self.arguments if arg.direction == 'in')


    @property
    def output_signature(self):
        return ''.join(arg.type for arg in self.arguments if arg.direction == 'out')


# end of class MethodData



class InterfaceData:
    """ The methods, signals, and properties declared for one interface.
        Properties are a mapping of name to (type signature, access).
    """

    def __init__(self, name, methods=(), signals=(), properties=None):
        self.name = name
        self.methods = dict((method.name, method) for method in methods)
        self.signals = tuple(signals)

        if properties is None:
            properties = dict()

        self.properties = dict(properties)


    def __contains__(self, name):
        return name in self.methods


    def __repr__(self):
        return 'InterfaceData(%r, methods=%r)' % (self.name, sorted(self.methods))


    def method(self, name):
        """ Return the :class:`MethodData` for *name*, or None if this
            interface does not declare such a method.
        """

        return self.methods.get(name)


# end of class InterfaceData



class Introspect:
    """ The parsed introspection of a single object. An empty instance,
        as returned by :func:`Introspect.empty`, stands in for an object
        whose introspection failed.
    """

    def __init__(self, interfaces=(), children=()):
        self.interfaces = dict((interface.name, interface) for interface in interfaces)
        self.children = tuple(children)


    def __bool__(self):
        return len(self.interfaces) > 0


    def __contains__(self, name):
        return name in self.interfaces


    def __repr__(self):
        return 'Introspect(%r)' % (sorted(self.interfaces),)


    @classmethod
    def empty(cls):
        return cls()


    def interface(self, name):
        """ Return the :class:`InterfaceData` for *name*, or None.
        """

        return self.interfaces.get(name)


# end of class Introspect



def parse(text):
    """ Parse an introspection XML document into an :class:`Introspect`
        instance. Raises :class:`busline.errors.ProtocolError` if the text
        is not well-formed, or is not a ``<node>`` document.
    """

    if isinstance(text, bytes):
        text = text.decode('utf-8')

    try:
        root = ElementTree.fromstring(text)
    except ElementTree.ParseError as e:
        raise ProtocolError('malformed introspection data: ' + str(e))

    if root.tag != 'node':
        raise ProtocolError('introspection root element is %s, expected node' % (repr(root.tag)))

    interfaces = list()
    children = list()

    for element in root:
        if element.tag == 'interface':
            interfaces.append(_interface(element))
        elif element.tag == 'node':
            name = element.get('name')
            if name:
                children.append(name)

    return Introspect(interfaces, children)



def _interface(element):

    name = _required(element, 'name')
    methods = list()
    signals = list()
    properties = dict()

    for child in element:
        if child.tag == 'method':
            arguments = _arguments(child, 'in')
            methods.append(MethodData(_required(child, 'name'), arguments))
        elif child.tag == 'signal':
            signals.append(_required(child, 'name'))
        elif child.tag == 'property':
            prop = _required(child, 'name')
            properties[prop] = (_required(child, 'type'), child.get('access', 'read'))

    return InterfaceData(name, methods, signals, properties)



def _arguments(element, default_direction):

    arguments = list()

    for child in element:
        if child.tag != 'arg':
            continue

        type = _required(child, 'type')
        direction = child.get('direction', default_direction)

        if direction not in ('in', 'out'):
            raise ProtocolError('invalid argument direction: ' + repr(direction))

        arguments.append(Argument(child.get('name'), type, direction))

    return arguments



def _required(element, attribute):

    value = element.get(attribute)
    if value is None:
        raise ProtocolError('<%s> element is missing its %s attribute' % (element.tag, attribute))
    return value


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
