"""
Folder tree materialization for the library view.

Pure functions: they take flat file records with storage paths and return a
nested, naturally sorted, pruned folder tree. Nothing here touches the
database or logs; callers fetch the records and report what happened.
"""
import math
import re

_NUMBER_RE = re.compile(r'\d+')

# Names without digits sort after every numbered name
NO_NUMBER = math.inf


class FolderNode:
    """A folder in the materialized tree.

    Sub-folders and files are kept apart, so a real folder named like a
    reserved key can never be mistaken for the file list.
    """

    __slots__ = ('folders', 'files')

    def __init__(self, folders=None, files=None):
        self.folders = folders if folders is not None else {}
        self.files = files if files is not None else []

    def child(self, name):
        """Get or create the sub-folder called name"""
        node = self.folders.get(name)
        if node is None:
            node = FolderNode()
            self.folders[name] = node
        return node

    def is_empty(self):
        return not self.folders and not self.files

    def to_dict(self):
        return {
            'folders': [
                {'name': name, **node.to_dict()}
                for name, node in self.folders.items()
            ],
            'files': list(self.files),
        }

    def __eq__(self, other):
        if not isinstance(other, FolderNode):
            return NotImplemented
        return (list(self.folders.items()) == list(other.folders.items())
                and self.files == other.files)

    def __repr__(self):
        return f'FolderNode(folders={list(self.folders)!r}, files={len(self.files)})'


def split_path(path):
    """Split a storage path into its non-empty segments"""
    if not path:
        return []
    return [part for part in path.split('/') if part]


def relative_segments(path, root_path):
    """
    Strip a textbook root from a file path.

    Matching is case-insensitive and segment-wise. When the path does not
    live under the root, its full segments come back unchanged and the file
    ends up in the textbook's root bucket.
    """
    segments = split_path(path)
    root = split_path(root_path)
    if not root or len(segments) < len(root):
        return segments

    for part, root_part in zip(segments, root):
        if part.lower() != root_part.lower():
            return segments
    return segments[len(root):]


def top_level_folder(path, root_path):
    """First folder below the root, or None for files directly in the root"""
    segments = relative_segments(path, root_path)
    if len(segments) > 1:
        return segments[0]
    return None


def build_tree(pairs):
    """
    Fold (file, segments) pairs into a FolderNode.

    Every segment but the last becomes a folder level; the last one is the
    file's own name. Files in the same folder keep insertion order.
    """
    tree = FolderNode()
    for file, segments in pairs:
        node = tree
        for folder_name in segments[:-1]:
            node = node.child(folder_name)
        node.files.append(file)
    return tree


def natural_sort_key(name):
    """Sort key: first number in the name, then the name case-insensitively"""
    match = _NUMBER_RE.search(name)
    number = int(match.group()) if match else NO_NUMBER
    return (number, name.lower(), name)


def natural_compare(a, b):
    """Three-way comparison of two names, so that 'Unit 2' < 'Unit 10'"""
    key_a = natural_sort_key(a)
    key_b = natural_sort_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def _file_name(file):
    return file['name']


def prune_tree(node):
    """
    Rebuild a tree without branches that hold no files.

    Sub-folders are sorted naturally by name, files naturally by their name.
    Files always come after folders. An all-empty tree yields an empty
    FolderNode, never None; dropping it is up to the caller.
    """
    pruned = FolderNode()
    for name in sorted(node.folders, key=natural_sort_key):
        child = prune_tree(node.folders[name])
        if not child.is_empty():
            pruned.folders[name] = child
    if node.files:
        pruned.files = sorted(node.files, key=lambda f: natural_sort_key(_file_name(f)))
    return pruned


def has_any_files(node):
    """True if any file lives anywhere under node"""
    if node.files:
        return True
    return any(has_any_files(child) for child in node.folders.values())


def count_files(node):
    return len(node.files) + sum(count_files(child) for child in node.folders.values())


def materialize_tree(files, root_path):
    """
    Build the pruned tree for one textbook.

    files are dicts with at least 'name' and 'dropbox_path'. A file whose
    path is missing, or equals the root itself, is placed directly under the
    root using its own name.
    """
    pairs = []
    for file in files:
        segments = relative_segments(file.get('dropbox_path'), root_path)
        if not segments:
            segments = [file['name']]
        pairs.append((file, segments))
    return prune_tree(build_tree(pairs))
