import logging

from .exceptions import MalformedDynamicSize


class Dependency:
    '''This makes the relation between fields possible.

    In practice this class allows to write something like

        Struct('simple', [
            ('length', U32),
            ('data', Bytes(Dependency('.length'))),
        ])

    and have the length of the bytes contained in the member named 'data'
    read from the member named 'length' at the moment the size is needed.

    The syntax of the expression is inspired from module resolution:

     - a leading '.' indicates we refer to a field at the same level
     - otherwise the first component is a child of the format

    any further component indexes into the decoded value of a struct, so that
    'header.count' is the member 'count' of the format's child 'header'.
    '''

    def __init__(self, expression):
        if not expression or expression == '.':
            raise ValueError('empty dependency expression')

        self.expression = expression
        self.logger = logging.getLogger(__name__)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.expression})>'

    @property
    def is_relative(self):
        return self.expression.startswith('.')

    @property
    def components(self):
        # '.miao'.split(".") -> ['', 'miao']
        # 'miao'.split(".") -> ['miao']
        path = self.expression.split('.')
        return path[1:] if self.is_relative else path

    def _do_resolve(self, ctx):
        scope = ctx.scope if self.is_relative else ctx.scope.root
        first, *others = self.components

        try:
            value = scope.lookup(first) if self.is_relative else scope.lookup_local(first)
            for component in others:
                value = value[component]
        except (KeyError, TypeError, IndexError):
            raise MalformedDynamicSize(
                f'cannot resolve {self.expression!r}', offset=ctx.offset)

        self.logger.debug(' resolved %s with value %s' % (self.expression, value))

        return value

    def resolve(self, ctx):
        '''With this method we resolve the expression with respect to the context
        passed as argument.'''
        return self._do_resolve(ctx)

    def resolve_length(self, ctx) -> int:
        '''Like resolve() but it checks that the value is usable as a length.'''
        value = self.resolve(ctx)

        # bool is an int, but a flag is never a length
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise MalformedDynamicSize(
                f'{self.expression!r} resolved to {value!r} that is not a valid length', offset=ctx.offset)

        return value


class RatioDependency(Dependency):

    def __init__(self, ratio, expression):
        super().__init__(expression)
        if ratio <= 0:
            raise ValueError(f'ratio must be positive, got {ratio}')
        self._ratio = ratio

    def resolve(self, ctx):
        value = super().resolve(ctx)

        if isinstance(value, int) and value % self._ratio:
            raise MalformedDynamicSize(
                f'{self.expression!r} resolved to {value} that is not a multiple of {self._ratio}', offset=ctx.offset)

        return value // self._ratio if isinstance(value, int) else value
