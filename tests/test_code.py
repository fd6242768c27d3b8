from capstone import CS_ARCH_X86, CS_MODE_64

from hexite import types
from hexite.code import Code
from hexite.context import SizeContext
from hexite.format import Format
from hexite.properties import Dependency
from hexite.view import View


def test_code():
    code = Code(3)

    assert code.size() == 3
    assert code.decode(SizeContext(b'\x55\x89\xe5')) == [
        'push ebp',
        'mov ebp, esp',
    ]


def test_code_64():
    code = Code(1, arch=CS_ARCH_X86, mode=CS_MODE_64)

    assert code.decode(SizeContext(b'\xc3')) == ['ret']


def test_code_in_view():
    fmt = Format(name='stub')
    fmt.add_child(0, types.U8, name='size')
    fmt.add_child(1, Code(Dependency('size')), name='text')

    view = View(b'\x02\x90\xc3\xff', fmt)
    result = view.query(1, 2)

    assert result.ok
    assert [(str(_.path), _.length, _.value) for _ in result] == [
        ('stub.text', 2, ['nop', 'ret']),
    ]
