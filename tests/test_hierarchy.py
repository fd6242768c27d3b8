from hexite.hierarchy import Hierarchy


def test_hierarchy():
    path = Hierarchy().push('root').push('entries').at(3).push('flags')

    assert str(path) == 'root.entries[3].flags'
    assert list(path) == [('root', None), ('entries', 3), ('flags', None)]
    assert path.components == ['root', 'entries[3]', 'flags']
    assert path.names == ['root', 'entries', 'flags']
    assert path == Hierarchy([('root', None), ('entries', 3), ('flags', None)])
    assert len(path) == 3


def test_nested_slices():
    path = Hierarchy().push('root').push('matrix').at(1).at(2)

    assert str(path) == 'root.matrix[1][2]'


def test_is_immutable():
    root = Hierarchy().push('root')
    child = root.push('child')

    assert str(root) == 'root'
    assert str(child) == 'root.child'
    assert str(Hierarchy()) == ''
