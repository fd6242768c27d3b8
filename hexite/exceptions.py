class HexiteException(Exception):
    '''Base class to extend in order to throw exception in hexite.

    It carries the chain of the field names that caused the exception, the
    View fills it while walking down a format.
    '''

    def __init__(self, msg='', chain=None):
        self.msg = msg
        self.chain = chain if chain is not None else []
        super().__init__(msg)

    def __str__(self):
        if not self.chain:
            return self.msg

        return '%s: %s' % ('.'.join(str(_) for _ in self.chain), self.msg)


class InvalidConfiguration(HexiteException):
    '''A construction-time parameter violates a precondition.'''
    pass


class LayoutConflict(HexiteException):
    '''Two non-union fields claim overlapping byte ranges.'''

    def __init__(self, first, second, chain=None):
        self.first = first
        self.second = second
        super().__init__(
            '%r overlaps with %r' % (first, second),
            chain=chain)


class TruncatedData(HexiteException):
    '''The data ran out at "offset" while "missing" more bytes were needed.'''

    def __init__(self, offset, missing, chain=None):
        self.offset = offset
        self.missing = missing
        super().__init__(
            'data ends at offset 0x%x, %d byte(s) short' % (offset, missing),
            chain=chain)


class MalformedDynamicSize(HexiteException):
    '''A dynamic size resolved to something that is not a valid length.'''

    def __init__(self, msg, offset=None, chain=None):
        self.offset = offset
        super().__init__(msg, chain=chain)


class DecodeLimitExceeded(HexiteException):
    '''A query walked more elements of a dynamic slice than allowed.'''
    pass


class UnpackException(HexiteException):
    pass


class MagicException(HexiteException):
    pass
