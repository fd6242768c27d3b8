"""
A Type describes how a piece of a buffer is laid out: it knows how many bytes
an instance of itself occupies and how to decode them.

The set of types is closed:

 1. the leaves (Primitive, Bytes, Bits), directly decodable from raw bytes
 2. Struct, an ordered collection of named members
 3. Slice, the repetition of a single element type

Every type is either of FIXED size, i.e. the size is known from the declaration
alone, or of DYNAMIC size, i.e. some data must be read from the buffer to know
it; there is a single size() method for both that takes an optional SizeContext
and fails only for a DYNAMIC type without one.
"""
import logging
import struct
from enum import Enum, auto

from bitstring import BitArray

from .enum import Compliant
from .meta import Endianess, ENDIANESS_PREFIX
from .properties import Dependency
from .exceptions import (
    HexiteException,
    InvalidConfiguration,
    MalformedDynamicSize,
    MagicException,
    UnpackException,
)


class SizeKind(Enum):
    FIXED   = auto()
    DYNAMIC = auto()


def align_up(value: int, alignment: int) -> int:
    return (value + alignment - 1) // alignment * alignment


class Type(object):
    """Base class to subclass from"""

    is_leaf = False

    def __init__(self, name=None):
        self.name = name if name is not None else self.__class__.__name__.lower()
        self.logger = logging.getLogger(__name__)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.name)

    def _get_fixed_size(self):
        raise NotImplementedError(f"method {self.__class__.__name__}._get_fixed_size() not implemented")

    fixed_size = property(
        fget=lambda self: self._get_fixed_size(),
        doc='The size in bytes when it does not depend on the data, None otherwise.',
    )

    @property
    def kind(self) -> SizeKind:
        return SizeKind.FIXED if self.fixed_size is not None else SizeKind.DYNAMIC

    def _get_dynamic_size(self, ctx) -> int:
        raise NotImplementedError(f"method {self.__class__.__name__}._get_dynamic_size() not implemented")

    def size(self, ctx=None) -> int:
        '''Number of bytes an instance of this type occupies when placed at the
        position of the context.'''
        fixed_size = self.fixed_size
        if fixed_size is not None:
            return fixed_size

        if ctx is None:
            raise InvalidConfiguration(f'{self.name!r} has a dynamic size, a SizeContext is needed')

        return self._get_dynamic_size(ctx)

    def decode(self, ctx):
        raise NotImplementedError(f"method {self.__class__.__name__}.decode() not implemented")


class Leaf(Type):
    '''A type with a direct representation, without sub-components.'''

    is_leaf = True

    def __init__(self, name=None, magic=None, compliant=Compliant.NONE):
        super().__init__(name=name)
        self.magic = magic
        self.compliant = compliant

    def _check_magic(self, value, ctx):
        if self.magic is not None and value != self.magic:
            self.logger.warning(f'the magic doesn\'t correspond for {self.name!r} at 0x{ctx.offset:x}')
            if self.compliant & Compliant.MAGIC:
                raise MagicException(f'expected {self.magic!r}, found {value!r}')

        return value


class Primitive(Leaf):
    """
    Simplest of the types: mimic the behaviour of the struct module unpacking
    integers from bytes.

    Via the "enum" argument you can indicate some subclass of enum.Enum so to
    have directly a representation of the integer value.
    """

    def __init__(self, format, name=None, endianess=Endianess.LITTLE_ENDIAN, enum=None, **kw):
        self.format = format
        self.endianess = endianess
        self.enum = enum

        try:
            self._struct = struct.Struct(self.get_format())
        except struct.error as e:
            raise InvalidConfiguration(f'{format!r} is not a valid primitive: {e}')

        if len(self._struct.unpack(b'\x00' * self._struct.size)) != 1:
            raise InvalidConfiguration(f'{format!r} must describe exactly one value')

        super().__init__(name=name if name is not None else format, **kw)

    def get_format(self):
        return '%s%s' % (ENDIANESS_PREFIX[self.endianess], self.format)

    def _get_fixed_size(self):
        return self._struct.size

    def _unpack_enum(self, value: int):
        try:
            return self.enum(value)
        except ValueError:
            if self.compliant & Compliant.ENUM:
                raise UnpackException(f'enum {self.enum.__name__} doesn\'t have element with value 0x{value:x} in it')

            self.logger.warning(f'enum {self.enum!r} doesn\'t have element with value 0x{value:x} in it')

        return value

    def decode(self, ctx):
        value = self._struct.unpack(ctx.read(self.fixed_size))[0]
        if self.enum:
            value = self._unpack_enum(value)

        return self._check_magic(value, ctx)


U8  = Primitive('B', name='u8')
U16 = Primitive('H', name='u16')
U32 = Primitive('I', name='u32')
U64 = Primitive('Q', name='u64')
I8  = Primitive('b', name='i8')
I16 = Primitive('h', name='i16')
I32 = Primitive('i', name='i32')
I64 = Primitive('q', name='i64')
F32 = Primitive('f', name='f32')
F64 = Primitive('d', name='f64')

U16BE = Primitive('H', name='u16be', endianess=Endianess.BIG_ENDIAN)
U32BE = Primitive('I', name='u32be', endianess=Endianess.BIG_ENDIAN)
U64BE = Primitive('Q', name='u64be', endianess=Endianess.BIG_ENDIAN)
I16BE = Primitive('h', name='i16be', endianess=Endianess.BIG_ENDIAN)
I32BE = Primitive('i', name='i32be', endianess=Endianess.BIG_ENDIAN)
I64BE = Primitive('q', name='i64be', endianess=Endianess.BIG_ENDIAN)


class Bytes(Leaf):
    """Represent a contiguous chunk of bytes.

    The length is either an integer or a Dependency, in the latter case the
    size is DYNAMIC."""

    def __init__(self, n, name=None, **kw):
        if isinstance(n, bool) or not isinstance(n, (int, Dependency)):
            raise InvalidConfiguration(f'n is {n.__class__.__name__!r}, it must be an int or a Dependency')
        if isinstance(n, int) and n < 0:
            raise InvalidConfiguration(f'n must be non negative, got {n}')

        self.n = n
        super().__init__(name=name, **kw)

    def _get_fixed_size(self):
        return self.n if isinstance(self.n, int) else None

    def _get_dynamic_size(self, ctx):
        return self.n.resolve_length(ctx)

    def _convert(self, raw: bytes, ctx):
        return raw

    def decode(self, ctx):
        raw = ctx.read(self.size(ctx))
        return self._check_magic(self._convert(raw, ctx), ctx)


class Bits(Leaf):
    '''A few bytes split in named bit-fields, the first one is the most significant.

        Bits(1, [('compressed', 1), ('level', 3), ('reserved', 4)])

    decodes to a dictionary mapping each name to an unsigned integer.'''

    def __init__(self, n, layout, name=None, **kw):
        width = sum(_[1] for _ in layout)
        if width > n * 8:
            raise InvalidConfiguration(f'the layout needs {width} bits but only {n * 8} are available')

        self.n = n
        self.layout = list(layout)
        super().__init__(name=name, **kw)

    def _get_fixed_size(self):
        return self.n

    def decode(self, ctx):
        bits = BitArray(bytes=ctx.read(self.n))

        value = {}
        position = 0
        for name, width in self.layout:
            value[name] = bits[position:position + width].uint
            position += width

        return self._check_magic(value, ctx)


class Member(object):
    '''A named slot of a Struct: without an explicit offset it's placed right
    after the previous member, aligned to "align".'''

    def __init__(self, name, type, offset=None, align=1):
        if offset is not None and offset < 0:
            raise InvalidConfiguration(f'member {name!r} has negative offset {offset}')
        if align < 1:
            raise InvalidConfiguration(f'member {name!r} has invalid alignment {align}')

        self.name = name
        self.type = type
        self.offset = offset
        self.align = align

    def __repr__(self):
        return '<%s(%s: %r)>' % (self.__class__.__name__, self.name, self.type)


class Struct(Type):
    '''An ordered collection of members.

    The size is the end of the furthest member, padded to "align"; so gaps
    (explicit offsets) and overlapping members (unions) are both possible.'''

    def __init__(self, name, members, align=1):
        super().__init__(name=name)
        if align < 1:
            raise InvalidConfiguration(f'struct {name!r} has invalid alignment {align}')

        self.members = [_ if isinstance(_, Member) else Member(*_) for _ in members]
        self.align = align

        names = [_.name for _ in self.members]
        duplicates = sorted({_ for _ in names if names.count(_) > 1})
        if duplicates:
            raise InvalidConfiguration(f'struct {name!r} has duplicate members {duplicates}')

        self._size = None
        if all(_.type.fixed_size is not None for _ in self.members):
            self._size = self.walk(None, lambda member, ctx: member.type.fixed_size)

    def _get_fixed_size(self):
        return self._size

    @property
    def layout(self):
        '''Offsets and sizes of the members when they don't depend on the data.'''
        result = {}
        cursor = 0
        for member in self.members:
            size = member.type.fixed_size
            offset = member.offset if member.offset is not None else (
                align_up(cursor, member.align) if cursor is not None else None)
            result[member.name] = (offset, size)
            cursor = offset + size if offset is not None and size is not None else None

        return result

    def walk(self, ctx, visit):
        '''Lay out the members starting from the position of "ctx".

        For each member visit(member, member_ctx) is called and it must return
        the size of the member, or None if it can't tell: in that case the
        following members without explicit offset can't be placed and the walk
        stops.

        It returns the size of the struct or None if it was not possible to
        compute it.'''
        base = ctx.offset if ctx is not None else 0
        scope = ctx.scope.child() if ctx is not None else None
        needs_scope = ctx is not None and self._size is None

        # the values of the leaves are what a Dependency can refer to: they
        # are decoded only when one asks for them
        pending = {}
        if needs_scope:
            def _load(name):
                member, member_ctx = pending.pop(name)
                try:
                    value = member.type.decode(member_ctx)
                except HexiteException as e:
                    # raised again at each lookup
                    scope[name] = e
                    raise

                scope[name] = value
                return value

            scope.loader = _load

        cursor = 0
        end = 0
        for member in self.members:
            if member.offset is not None:
                offset = member.offset
            elif cursor is None:
                return None
            else:
                offset = align_up(cursor, member.align)

            member_ctx = ctx.enter(base + offset, scope) if ctx is not None else None
            size = visit(member, member_ctx)

            if size is None:
                cursor = end = None
                continue

            if needs_scope and member.type.is_leaf and member.name not in scope:
                pending[member.name] = (member, member_ctx)

            cursor = offset + size
            end = max(end, cursor) if end is not None else None

        return align_up(end, self.align) if end is not None else None

    def _get_dynamic_size(self, ctx):
        return self.walk(ctx, lambda member, member_ctx: member.type.size(member_ctx))

    def decode(self, ctx):
        values = {}

        def _visit(member, member_ctx):
            value = member.type.decode(member_ctx)
            member_ctx.scope[member.name] = value
            values[member.name] = value
            return member.type.size(member_ctx)

        self.walk(ctx, _visit)

        return values


class Slice(Type):
    '''Repetition of the same element type.

    You can indicate an explicit number of elements via the parameter named "count"
    (an integer or a Dependency) or you can indicate with a callable returning True
    which element is the terminator via the parameter named "until"; the callable
    receives the decoded value of each element and the terminator is part of the slice.
    '''

    def __init__(self, element, count=None, until=None, name=None):
        if count is None and until is None:
            raise InvalidConfiguration('a Slice needs "count" or "until"')
        if count is not None and (isinstance(count, bool) or not isinstance(count, (int, Dependency))):
            raise InvalidConfiguration(f'count is {count.__class__.__name__!r}, it must be an int or a Dependency')
        if isinstance(count, int) and count < 0:
            raise InvalidConfiguration(f'count must be non negative, got {count}')
        if count is None and element.fixed_size == 0:
            raise InvalidConfiguration('a Slice with a terminator needs elements with a size')

        self.element = element
        self.count = count
        self.until = until
        super().__init__(name=name if name is not None else f'{element.name}[]')

    def _get_fixed_size(self):
        element_size = self.element.fixed_size
        if isinstance(self.count, int) and self.until is None and element_size is not None:
            return self.count * element_size

        return None

    def length(self, ctx=None):
        '''The number of elements, or None if it's known only walking the elements.'''
        if self.until is not None:
            return None

        if isinstance(self.count, int):
            return self.count

        if ctx is None:
            raise InvalidConfiguration(f'{self.name!r} has a dynamic count, a SizeContext is needed')

        return self.count.resolve_length(ctx)

    def iter_elements(self, ctx, index=0, offset=None):
        '''Generates (index, element_ctx, size, value) walking the elements in order.

        The walk can start from a known element, indicating its index and its
        (absolute) offset. The value is decoded only when needed to find the
        terminator, otherwise it's None.'''
        count = self.length(ctx)
        element_size = self.element.fixed_size
        position = ctx.offset if offset is None else offset

        while count is None or index < count:
            element_ctx = ctx.enter(position)
            size = element_size if element_size is not None else self.element.size(element_ctx)

            value = None
            if self.until is not None:
                if size == 0:
                    raise MalformedDynamicSize(
                        f'element {index} of {self.name!r} has no size, the terminator would never be found',
                        offset=position)
                value = self.element.decode(element_ctx)

            yield index, element_ctx, size, value

            if self.until is not None and self.until(value):
                return

            position += size
            index += 1

    def _get_dynamic_size(self, ctx):
        element_size = self.element.fixed_size
        if element_size is not None and self.until is None:
            return self.length(ctx) * element_size

        return sum(size for _, _, size, _ in self.iter_elements(ctx))

    def span(self, ctx, first, last):
        '''Translates the elements in [first, last) into the range of bytes they
        occupy, relative to the start of the slice; the indexes are clamped to
        the number of elements.'''
        if first >= last:
            return 0, 0

        element_size = self.element.fixed_size
        if element_size is not None and self.until is None:
            count = self.length(ctx)
            first, last = min(first, count), min(last, count)
            return first * element_size, last * element_size

        start = end = None
        for index, element_ctx, size, _ in self.iter_elements(ctx):
            if index >= last:
                break

            relative = element_ctx.offset - ctx.offset
            if index == first:
                start = relative
            end = relative + size

        if end is None:
            return 0, 0

        return (start if start is not None else end), end

    def decode(self, ctx):
        return [
            value if self.until is not None else self.element.decode(element_ctx)
            for _, element_ctx, _, value in self.iter_elements(ctx)
        ]
