import logging
from enum import Enum, auto


class Endianess(Enum):
    LITTLE_ENDIAN = auto()
    BIG_ENDIAN    = auto()
    NETWORK       = auto()
    NATIVE        = auto()


ENDIANESS_PREFIX = {
    Endianess.LITTLE_ENDIAN: '<',
    Endianess.BIG_ENDIAN:    '>',
    Endianess.NETWORK:       '!',
    Endianess.NATIVE:        '=',
}


class Meta(object):
    """Class containing metadata about the declaration"""

    def __init__(self):
        self.fields = []
        self.members = {}


class MetaDeclaration(type):
    '''Build a Struct out of the class body, so that a format can be written as

        class Header(Declaration):
            magic = types.Bytes(4)
            count = types.U32

    and used as Header.struct. The order of the members is the order of declaration,
    the members of the parents come first.'''

    logger = logging.getLogger(__name__)

    def __new__(cls, names, bases, attrs):
        new_cls = super(MetaDeclaration, cls).__new__(cls, names, bases, attrs)
        new_cls._meta = Meta()

        parents = [_ for _ in bases if isinstance(_, MetaDeclaration)]
        if not parents:  # Declaration itself
            return new_cls

        from .types import Type, Member, Struct

        # handle inheritance
        for parent in parents:
            for name in parent._meta.fields:
                if name not in new_cls._meta.members:
                    new_cls._meta.fields.append(name)
                new_cls._meta.members[name] = parent._meta.members[name]

        for name, value in attrs.items():
            if isinstance(value, Member):
                member = Member(name, value.type, offset=value.offset, align=value.align)
            elif isinstance(value, Type):
                member = Member(name, value)
            else:
                continue

            cls.logger.debug('member \'%s\' found for declaration \'%s\'' % (name, names))
            if name not in new_cls._meta.members:
                new_cls._meta.fields.append(name)
            new_cls._meta.members[name] = member

        new_cls.struct = Struct(
            names,
            [new_cls._meta.members[_] for _ in new_cls._meta.fields],
            align=attrs.get('align', getattr(new_cls, 'align', 1)),
        )

        return new_cls


class Declaration(metaclass=MetaDeclaration):
    align = 1
