class Hierarchy(object):
    '''The position of a field inside nested structs and slices, as a sequence
    of (name, index) couples where index is None outside a slice.

    It's only a label: Hierarchy([('root', None), ('entries', 3), ('flags', None)])
    is displayed as "root.entries[3].flags".'''

    def __init__(self, path=()):
        self._path = tuple(path)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self})>'

    def __str__(self):
        result = ''
        for name, index in self._path:
            if name:
                result += ('.' if result else '') + name
            if index is not None:
                result += f'[{index}]'

        return result

    def __iter__(self):
        return iter(self._path)

    def __len__(self):
        return len(self._path)

    def __eq__(self, other):
        if isinstance(other, str):
            return str(self) == other
        if not isinstance(other, Hierarchy):
            return NotImplemented

        return self._path == other._path

    def __hash__(self):
        return hash(self._path)

    @property
    def components(self):
        '''The path as strings, e.g. ['root', 'entries[3]', 'flags'].'''
        return str(self).split('.') if self._path else []

    @property
    def names(self):
        return [name for name, _ in self._path if name]

    def push(self, name):
        return Hierarchy(self._path + ((name, None),))

    def at(self, index):
        '''The element "index" of the slice this hierarchy points to.'''
        if self._path and self._path[-1][1] is None:
            name, _ = self._path[-1]
            return Hierarchy(self._path[:-1] + ((name, index),))

        # slice of slices
        return Hierarchy(self._path + (('', index),))
