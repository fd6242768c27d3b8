"""
# Hexite: binary formats for viewers.

A format is described by composing a small set of types:

 1. the leaves: Primitive (integers and floats via the struct module),
    Bytes, Bits and Code
 2. Struct: named members, at explicit or implicit offsets
 3. Slice: the repetition of an element, a fixed number of times, as many
    times as indicated by a field decoded before, or until a terminator

Every type has either a FIXED size, known from the declaration, or a DYNAMIC
size, known only reading the data (the length of a string stored in a field
before it, for example).

A Format places types at offsets of a buffer; a View binds a Format to a
buffer and decodes only the fields inside a range of bytes, which is what a
viewer needs to show a window of a huge file. The range itself is obtained
from the scroll.Container, that maps the scroll position to the items to
render.

Nothing here modifies the buffer.
"""
