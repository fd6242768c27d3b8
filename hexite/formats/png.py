'''
# Portable Network Graphics

The specification is at <http://www.libpng.org/pub/png/spec/1.2/PNG-Contents.html>.

A PNG file is a signature followed by a sequence of chunks terminated by the
IEND chunk; the first chunk must be IHDR so that it has a fixed position and
it's described in detail, the others are kept as raw data.
'''
from enum import Enum

from hexite import types
from hexite.format import Format
from hexite.meta import Declaration
from hexite.properties import Dependency


SIGNATURE = b'\x89PNG\r\n\x1a\n'


class PNGColorType(Enum):
    '''The color type definition of the PNG is a little tricky and doesn't seem
    to follow a bit-mask. We are going to list all the valid cases.'''
    GRAYSCALE   = 0x00
    RGB         = 0x02
    RGB_PALETTE = 0x03
    GS_ALPHA    = 0x04
    RGBA        = 0x06


class IHDRData(Declaration):
    '''
    Width and height give the image dimensions in pixels.
    Bit depth is a single-byte integer giving the number of bits per sample or per palette index (not per pixel).
    Color type is a single-byte integer that describes the interpretation of the image data.
    '''
    width       = types.U32BE
    height      = types.U32BE
    depth       = types.U8
    color       = types.Primitive('B', name='color', enum=PNGColorType)
    compression = types.U8
    filter      = types.U8
    interlace   = types.U8


class IHDRChunk(Declaration):
    length = types.Primitive('I', name='length', endianess=types.Endianess.BIG_ENDIAN, magic=13)
    type   = types.Bytes(4, magic=b'IHDR')
    data   = IHDRData.struct
    crc    = types.U32BE


class PNGChunk(Declaration):
    '''This is the main data structure of the format: the 4 fields represent
    a chunk into the file.

    A chunk is defined as critical or ancillary depending on the case of the
    starting letter of the type field.'''
    length = types.U32BE
    type   = types.Bytes(4)
    data   = types.Bytes(Dependency('.length'))
    crc    = types.U32BE


def is_critical(chunk) -> bool:
    return chr(chunk['type'][0]).isupper()


def png_format() -> Format:
    png = Format(name='png')
    png.add_child(0, types.Bytes(len(SIGNATURE), name='signature', magic=SIGNATURE), name='signature')
    png.add_child(len(SIGNATURE), IHDRChunk.struct, name='header')
    png.add_child(
        len(SIGNATURE) + IHDRChunk.struct.fixed_size,
        types.Slice(PNGChunk.struct, until=lambda chunk: chunk['type'] == b'IEND'),
        name='chunks',
    )

    return png
