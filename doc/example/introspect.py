""" Connect to the session bus and list the interfaces and methods of one
    remote object, for example::

        python introspect.py org.freedesktop.DBus /org/freedesktop/DBus
"""

import sys

import busline


def main():

    if len(sys.argv) != 3:
        print('usage: introspect.py DESTINATION PATH')
        return 2

    destination, path = sys.argv[1:]

    with busline.session_bus() as connection:
        print('connected as', connection.unique_name)

        obj = connection.get_object(destination, path)

        for name in obj.interfaces:
            print(name)
            interface = connection.interface(obj, name)
            for method in interface.data.methods.values():
                print('    %s(%s) -> (%s)' % (method.name, method.input_signature, method.output_signature))

        if obj.introspection.interface('org.freedesktop.DBus') is not None:
            bus = connection.interface(obj, 'org.freedesktop.DBus')
            reply = bus.call('ListNames')
            print('%d names on the bus' % (len(reply.first([]))))

    return 0


if __name__ == '__main__':
    sys.exit(main())

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
