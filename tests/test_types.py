import struct
from enum import Enum, auto

import pytest

from hexite import types
from hexite.context import SizeContext, Scope
from hexite.enum import Compliant
from hexite.exceptions import (
    InvalidConfiguration,
    MagicException,
    MalformedDynamicSize,
    TruncatedData,
    UnpackException,
)
from hexite.meta import Declaration
from hexite.properties import Dependency, RatioDependency
from hexite.types import SizeKind


def test_primitive():
    ctx = SizeContext(b'\x01\x00\x00\x00')

    assert types.U32.kind == SizeKind.FIXED
    assert types.U32.size() == 4
    assert types.U32.size(ctx) == 4
    assert types.U32.decode(ctx) == 1
    assert types.U32BE.decode(ctx) == 0x01000000


def test_primitive_invalid_format():
    with pytest.raises(InvalidConfiguration):
        types.Primitive('Z')

    with pytest.raises(InvalidConfiguration):
        types.Primitive('2I')


def test_primitive_enum():
    class DummyEnum(Enum):
        NONE = 0
        FIRST = auto()
        SECOND = auto()

    relaxed = types.Primitive('I', enum=DummyEnum)
    strict = types.Primitive('I', enum=DummyEnum, compliant=Compliant.ENUM)

    assert relaxed.decode(SizeContext(b'\x02\x00\x00\x00')) == DummyEnum.SECOND
    # an unknown value is returned as it is
    assert relaxed.decode(SizeContext(b'\x04\x00\x00\x00')) == 4

    with pytest.raises(UnpackException):
        strict.decode(SizeContext(b'\x04\x00\x00\x00'))


def test_magic():
    relaxed = types.Bytes(4, magic=b'KEBA')
    strict = types.Bytes(4, magic=b'KEBA', compliant=Compliant.MAGIC)

    assert relaxed.decode(SizeContext(b'AUAU')) == b'AUAU'

    with pytest.raises(MagicException):
        strict.decode(SizeContext(b'AUAU'))

    assert strict.decode(SizeContext(b'KEBAB')) == b'KEBA'


def test_primitive_truncated():
    with pytest.raises(TruncatedData) as e:
        types.U32.decode(SizeContext(b'\x01\x02'))

    assert e.value.offset == 2
    assert e.value.missing == 2


def test_bytes():
    data = bytearray(b'\x03abcdef')
    ctx = SizeContext(data)

    assert types.Bytes(3).size() == 3
    assert types.Bytes(3).decode(ctx.enter(1)) == b'abc'

    dynamic = types.Bytes(Dependency('.length'))
    assert dynamic.kind == SizeKind.DYNAMIC
    assert dynamic.fixed_size is None

    with pytest.raises(InvalidConfiguration):
        dynamic.size()

    scoped = ctx.enter(1, Scope({'length': 5}))
    assert dynamic.size(scoped) == 5
    value = dynamic.decode(scoped)
    assert value == b'abcde'

    # the value is a copy of the buffer
    data[1] = ord('z')
    assert value == b'abcde'
    assert dynamic.decode(scoped) == b'zbcde'


def test_bytes_invalid():
    with pytest.raises(InvalidConfiguration):
        types.Bytes(-1)

    with pytest.raises(InvalidConfiguration):
        types.Bytes('.length')


def test_bits():
    bits = types.Bits(1, [('compressed', 1), ('level', 3), ('reserved', 4)])

    assert bits.size() == 1
    assert bits.decode(SizeContext(b'\xb5')) == {
        'compressed': 1,
        'level': 3,
        'reserved': 5,
    }

    with pytest.raises(InvalidConfiguration):
        types.Bits(1, [('a', 4), ('b', 5)])


def test_struct_fixed():
    header = types.Struct('header', [
        ('magic', types.Bytes(4)),
        ('count', types.U16),
        ('flags', types.U8),
    ])

    assert header.kind == SizeKind.FIXED
    assert header.size() == 7
    assert header.layout == {
        'magic': (0, 4),
        'count': (4, 2),
        'flags': (6, 1),
    }

    data = b'KEBA' + struct.pack('<HB', 0x1234, 7)
    assert header.decode(SizeContext(data)) == {
        'magic': b'KEBA',
        'count': 0x1234,
        'flags': 7,
    }


def test_struct_explicit_offsets_and_alignment():
    gapped = types.Struct('gapped', [
        types.Member('a', types.U8),
        types.Member('b', types.U32, align=4),
        types.Member('c', types.U16, offset=0x10),
    ], align=8)

    assert gapped.layout == {
        'a': (0, 1),
        'b': (4, 4),
        'c': (0x10, 2),
    }
    # 0x12 padded to 8
    assert gapped.size() == 0x18


def test_struct_union_like():
    union = types.Struct('union', [
        types.Member('as_int', types.U32, offset=0),
        types.Member('as_bytes', types.Bytes(4), offset=0),
    ])

    assert union.size() == 4
    assert union.decode(SizeContext(b'\x01\x02\x03\x04')) == {
        'as_int': 0x04030201,
        'as_bytes': b'\x01\x02\x03\x04',
    }


def test_struct_duplicate_members():
    with pytest.raises(InvalidConfiguration):
        types.Struct('dup', [('a', types.U8), ('a', types.U16)])


def test_struct_dynamic():
    entry = types.Struct('entry', [
        ('length', types.U8),
        ('name', types.Bytes(Dependency('.length'))),
        ('flags', types.U8),
    ])

    assert entry.kind == SizeKind.DYNAMIC
    assert entry.layout == {
        'length': (0, 1),
        'name': (1, None),
        'flags': (None, 1),
    }

    ctx = SizeContext(b'\x05kebab\x01\xff')
    assert entry.size(ctx) == 7
    assert entry.decode(ctx) == {
        'length': 5,
        'name': b'kebab',
        'flags': 1,
    }


def test_struct_dynamic_truncated():
    entry = types.Struct('entry', [
        ('length', types.U32),
        ('name', types.Bytes(Dependency('.length'))),
    ])

    # the length itself is not there
    with pytest.raises(TruncatedData):
        entry.size(SizeContext(b'\x05'))

    with pytest.raises(TruncatedData):
        entry.decode(SizeContext(b'\x05\x00\x00\x00ke'))


def test_struct_size_decodes_only_dependencies():
    decoded = []

    class Payload(types.Bytes):
        def _convert(self, raw, ctx):
            decoded.append(ctx.offset)
            return raw

    entry = types.Struct('entry', [
        ('length', types.U8),
        ('payload', Payload(Dependency('.length'))),
        ('crc', types.U8),
    ])
    chunks = types.Slice(entry, count=3)

    ctx = SizeContext(b'\x02ab\x00\x03cde\x00\x01f\x00')
    assert chunks.size(ctx) == 12
    assert decoded == []

    assert [_['payload'] for _ in chunks.decode(ctx)] == [b'ab', b'cde', b'f']
    assert decoded == [1, 5, 10]


def test_struct_nested_dependency():
    '''A member of a nested struct can refer to a member of the enclosing one.'''
    outer = types.Struct('outer', [
        ('count', types.U8),
        ('body', types.Struct('body', [
            ('items', types.Slice(types.U8, count=Dependency('.count'))),
        ])),
    ])

    ctx = SizeContext(b'\x03\x0a\x0b\x0c\x0d')
    assert outer.size(ctx) == 4
    assert outer.decode(ctx) == {
        'count': 3,
        'body': {'items': [0x0a, 0x0b, 0x0c]},
    }


def test_slice_fixed():
    array = types.Slice(types.U16, count=3)

    assert array.kind == SizeKind.FIXED
    assert array.size() == 6
    assert array.decode(SizeContext(b'\x01\x00\x02\x00\x03\x00')) == [1, 2, 3]
    assert array.span(None, 1, 10) == (2, 6)


def test_slice_dynamic_count():
    array = types.Slice(types.U32, count=Dependency('.n'))
    ctx = SizeContext(b'\x00' * 64, scope=Scope({'n': 3}))

    assert array.kind == SizeKind.DYNAMIC
    assert array.size(ctx) == 12
    assert array.length(ctx) == 3

    with pytest.raises(MalformedDynamicSize):
        array.size(SizeContext(b'', scope=Scope({'n': -1})))

    with pytest.raises(MalformedDynamicSize):
        array.size(SizeContext(b''))


def test_slice_dynamic_elements():
    string = types.Struct('string', [
        ('length', types.U8),
        ('data', types.Bytes(Dependency('.length'))),
    ])
    array = types.Slice(string, count=3)

    data = b'\x01a\x03bcd\x00'
    ctx = SizeContext(data)

    assert array.kind == SizeKind.DYNAMIC
    assert array.size(ctx) == len(data)
    assert [_['data'] for _ in array.decode(ctx)] == [b'a', b'bcd', b'']
    assert array.span(ctx, 1, 2) == (2, 6)
    assert array.span(ctx, 1, 100) == (2, 7)
    assert array.span(ctx, 5, 100) == (7, 7)

    with pytest.raises(TruncatedData):
        array.size(SizeContext(data[:4]))


def test_slice_until():
    array = types.Slice(types.U8, until=lambda value: value == 0)

    ctx = SizeContext(b'abc\x00def')
    assert array.size(ctx) == 4
    assert array.decode(ctx) == [ord('a'), ord('b'), ord('c'), 0]

    with pytest.raises(TruncatedData):
        array.size(SizeContext(b'abc'))

    with pytest.raises(InvalidConfiguration):
        types.Slice(types.Bytes(0), until=lambda value: True)

    with pytest.raises(InvalidConfiguration):
        types.Slice(types.U8)


def test_ratio_dependency():
    palette = types.Slice(types.Bytes(3), count=RatioDependency(3, '.length'))

    ctx = SizeContext(b'\x00' * 9, scope=Scope({'length': 9}))
    assert palette.size(ctx) == 9

    with pytest.raises(MalformedDynamicSize):
        palette.size(SizeContext(b'', scope=Scope({'length': 10})))


def test_dependency_from_root():
    nested = Scope(parent=Scope({'header': {'count': 2}}))
    array = types.Slice(types.U8, count=Dependency('header.count'))

    assert array.size(SizeContext(b'\x00\x00', scope=nested)) == 2


def test_size_does_not_change_context():
    entry = types.Struct('entry', [
        ('length', types.U8),
        ('name', types.Bytes(Dependency('.length'))),
    ])
    scope = Scope({'other': 1})
    ctx = SizeContext(b'\x02ab', scope=scope)

    entry.size(ctx)
    entry.decode(ctx)

    assert ctx.offset == 0
    assert scope.values == {'other': 1}


def test_declaration():
    class Base(Declaration):
        magic = types.Bytes(2)

    class Header(Base):
        version = types.U8
        count   = types.U16

    assert Base.struct.size() == 2
    assert Header.struct.name == 'Header'
    assert [_.name for _ in Header.struct.members] == ['magic', 'version', 'count']
    assert Header.struct.decode(SizeContext(b'HX\x01\x02\x00')) == {
        'magic': b'HX',
        'version': 1,
        'count': 2,
    }
