'''
This module helps to decode machine instructions

Some examples here: <https://www.capstone-engine.org/lang_python.html>.
'''
from capstone import Cs, CsError, CS_ARCH_X86, CS_MODE_32

from .types import Bytes
from .exceptions import UnpackException


def disasm(code, arch, mode, start=0, detail: bool = False):
    md = Cs(arch, mode)
    md.detail = detail

    for _ in md.disasm(code, start):
        yield _


class Code(Bytes):
    '''Bytes containing machine code: the decoded value is the list of the
    instructions, as text.

    The address of the first instruction is the position of the data in the
    buffer plus "base".'''

    def __init__(self, n, arch=CS_ARCH_X86, mode=CS_MODE_32, base=0, **kw):
        self.arch = arch
        self.mode = mode
        self.base = base
        super().__init__(n, **kw)

    def _convert(self, raw, ctx):
        try:
            return [
                f'{_.mnemonic} {_.op_str}'.strip()
                for _ in disasm(raw, self.arch, self.mode, start=self.base + ctx.offset)
            ]
        except CsError as e:
            raise UnpackException(f'cannot disassemble {self.name!r}: {e}')
