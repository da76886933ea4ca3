"""
Unit tests for the library tree materialization
"""

from englib.core.tree_utils import (
    FolderNode,
    build_tree,
    count_files,
    has_any_files,
    materialize_tree,
    natural_compare,
    natural_sort_key,
    prune_tree,
    relative_segments,
    top_level_folder,
)


def doc(name, path=None):
    return {'name': name, 'dropbox_path': path}


def test_natural_compare_orders_numbers_numerically():
    assert natural_compare('unit2', 'unit10') < 0
    assert natural_compare('Unit 10', 'Unit 2') > 0
    assert natural_compare('unit2', 'unit2') == 0


def test_names_without_digits_sort_after_numbered_names():
    assert natural_compare('intro', 'unit1') > 0
    assert sorted(['intro', 'unit 100000000', 'Unit 3'], key=natural_sort_key) == [
        'Unit 3', 'unit 100000000', 'intro'
    ]


def test_case_variants_sort_next_to_each_other():
    names = ['Unit 2', 'appendix', 'unit 2', 'Unit 10', 'Answers']
    ordered = sorted(names, key=natural_sort_key)
    assert ordered.index('unit 2') - ordered.index('Unit 2') in (1, -1)
    assert ordered[-2:] == ['Answers', 'appendix']


def test_natural_sort_is_a_total_order():
    names = ['b1', 'B1', 'a1', 'x', 'X', '10', '9']
    once = sorted(names, key=natural_sort_key)
    assert sorted(reversed(names), key=natural_sort_key) == once


def test_relative_segments_strips_root_case_insensitively():
    assert relative_segments('/root/book/Unit1/file.pdf', '/Root/Book/') == ['Unit1', 'file.pdf']


def test_relative_segments_falls_back_to_full_path():
    assert relative_segments('/Other/Unit1/file.pdf', '/Root/Book/') == ['Other', 'Unit1', 'file.pdf']


def test_relative_segments_respects_segment_boundaries():
    # '/BookA2' is not inside '/BookA'
    assert relative_segments('/BookA2/x.pdf', '/BookA') == ['BookA2', 'x.pdf']


def test_top_level_folder():
    assert top_level_folder('/BookA/U1/a.pdf', '/BookA/') == 'U1'
    assert top_level_folder('/BookA/a.pdf', '/BookA/') is None


def test_build_tree_nests_files_under_folders():
    worksheet = doc('worksheet.pdf')
    tree = build_tree([(worksheet, ['1과', '문장분석', 'worksheet.pdf'])])
    assert tree.folders['1과'].folders['문장분석'].files == [worksheet]


def test_build_tree_single_segment_lands_in_root():
    cover = doc('cover.pdf')
    tree = build_tree([(cover, ['cover.pdf'])])
    assert tree.folders == {}
    assert tree.files == [cover]


def test_build_tree_keeps_insertion_order_within_folder():
    b, a = doc('b.pdf'), doc('a.pdf')
    tree = build_tree([(b, ['U1', 'b.pdf']), (a, ['U1', 'a.pdf'])])
    assert tree.folders['U1'].files == [b, a]


def test_prune_drops_empty_branches():
    a = doc('a.pdf')
    tree = FolderNode(folders={
        'empty': FolderNode(folders={'deeper': FolderNode()}),
        'U1': FolderNode(files=[a]),
    })
    pruned = prune_tree(tree)
    assert list(pruned.folders) == ['U1']
    assert pruned.folders['U1'].files == [a]


def test_prune_of_empty_tree_is_empty_node():
    pruned = prune_tree(FolderNode(folders={'x': FolderNode()}))
    assert isinstance(pruned, FolderNode)
    assert pruned.is_empty()
    assert not has_any_files(pruned)


def test_prune_sorts_folders_and_files_naturally():
    tree = build_tree([
        (doc('Lesson 10.pdf'), ['Unit 10', 'Lesson 10.pdf']),
        (doc('Lesson 2.pdf'), ['Unit 10', 'Lesson 2.pdf']),
        (doc('x.pdf'), ['Unit 2', 'x.pdf']),
        (doc('y.pdf'), ['부록', 'y.pdf']),
    ])
    pruned = prune_tree(tree)
    assert list(pruned.folders) == ['Unit 2', 'Unit 10', '부록']
    assert [f['name'] for f in pruned.folders['Unit 10'].files] == ['Lesson 2.pdf', 'Lesson 10.pdf']


def test_prune_is_idempotent():
    tree = build_tree([
        (doc('c.pdf'), ['U2', 'c.pdf']),
        (doc('a.pdf'), ['U1', 'a.pdf']),
        (doc('root.pdf'), ['root.pdf']),
    ])
    tree.folders['U3'] = FolderNode()
    once = prune_tree(tree)
    assert prune_tree(once) == once


def test_files_are_serialized_after_folders():
    tree = prune_tree(build_tree([
        (doc('0 intro.pdf'), ['0 intro.pdf']),
        (doc('a.pdf'), ['U1', 'a.pdf']),
    ]))
    assert list(tree.to_dict()) == ['folders', 'files']
    assert tree.to_dict()['folders'][0]['name'] == 'U1'


def test_folder_named_like_reserved_key_does_not_collide():
    a = doc('a.pdf')
    tree = prune_tree(build_tree([(a, ['_files', 'a.pdf'])]))
    assert tree.files == []
    assert tree.folders['_files'].files == [a]


def test_materialize_tree_end_to_end():
    a = doc('a.pdf', '/BookA/U1/a.pdf')
    b = doc('b.pdf', '/BookA/U1/b.pdf')
    c = doc('c.pdf', '/BookA/U2/c.pdf')
    tree = materialize_tree([c, b, a], '/BookA/')

    assert list(tree.folders) == ['U1', 'U2']
    assert tree.folders['U1'].files == [a, b]
    assert tree.folders['U2'].files == [c]
    assert 'U3' not in tree.folders
    assert count_files(tree) == 3


def test_materialize_tree_places_pathless_file_in_root():
    orphan = doc('orphan.pdf', None)
    tree = materialize_tree([orphan], '/BookA/')
    assert tree.files == [orphan]
