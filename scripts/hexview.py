#!/usr/bin/env python3
'''
Print what a viewer would render of a PNG file scrolled at a given position:
the rows of the hex dump and the fields decoded in them.

 $ hexview.py image.png 4096 400
'''
import logging
import os
import sys

from hexite.formats.png import png_format
from hexite.scroll import Container
from hexite.view import View


logging.basicConfig(level=logging.DEBUG if 'DEBUG' in os.environ else logging.INFO)
logger = logging.getLogger(__name__)

ROW_SIZE = 16      # bytes in a row of the hex dump
ROW_HEIGHT = 20    # pixels


def usage(progname):
    print(f'usage: {progname} <png file> [<scroll position> [<viewport height>]]')
    sys.exit(1)


def dump_rows(view, rows):
    for row in rows:
        data = view.read(row * ROW_SIZE, (row + 1) * ROW_SIZE)
        print(f'{row * ROW_SIZE:08x}  {data.hex(" "):<48}  {"".join(chr(_) if 0x20 <= _ < 0x7f else "." for _ in data)}')


def dump_fields(result):
    for field in result:
        if field.ok:
            print(f'{field.offset:08x} {field.length:6d} {str(field.path):<40} {field.value!r}')
        else:
            print(f'{field.offset:08x} {"?":>6} {str(field.path):<40} ERROR: {field.error}')

    for error in result.errors:
        logger.warning(error)


if __name__ == '__main__':
    if len(sys.argv) < 2:
        usage(sys.argv[0])

    path = sys.argv[1]
    position = int(sys.argv[2], 0) if len(sys.argv) > 2 else 0
    viewport = int(sys.argv[3], 0) if len(sys.argv) > 3 else 400

    with open(path, 'rb') as f:
        data = f.read()

    view = View(data, png_format())

    num_rows = -(-len(view) // ROW_SIZE)
    container = Container(num_rows, ROW_HEIGHT)
    container.on_resize(viewport)
    update = container.on_scroll(position)

    print(f'[{update.virtual_before}px before, rows {update.item_range.start}-{update.item_range.stop}, '
          f'{update.virtual_after}px after]')

    dump_rows(view, update.item_range)
    print()
    dump_fields(view.query(update.item_range.start * ROW_SIZE, update.item_range.stop * ROW_SIZE))

