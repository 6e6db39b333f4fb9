import os


class FileNode:
    def __init__(self, name, data=None, path=None):
        self.name = name
        self.path = path
        self.parent = None
        self._data = data

    @property
    def data(self):
        if self._data is None and self.path is not None:
            with open(self.path, "rb") as infile:
                self._data = infile.read()

        return self._data

    @property
    def filename(self):
        return self.path or self.name


class DirectoryNode:
    def __init__(self, name, path=None):
        self.name = name
        self.path = path
        self.parent = None
        self.children = []

    @staticmethod
    def from_path(path):
        root = DirectoryNode(os.path.basename(os.path.normpath(path)), path)

        for entry in sorted(os.scandir(path), key=lambda e: e.name):
            if entry.is_dir():
                root.add(DirectoryNode.from_path(entry.path))

            else:
                root.add(FileNode(entry.name, path=entry.path))

        return root

    @property
    def filename(self):
        return self.path or self.name

    @property
    def files(self):
        return [node for node in self.children if isinstance(node, FileNode)]

    @property
    def directories(self):
        return [node for node in self.children if isinstance(node, DirectoryNode)]

    def add(self, node):
        node.parent = self
        self.children.append(node)
        return node

    def navigate(self, name, case_insensitive=True):
        for node in self.children:
            if node.name == name or (case_insensitive and node.name.lower() == name.lower()):
                return node

        return None

    def find(self, name, recursive=True, case_insensitive=True, predicate=None):
        for node in self.children:
            matched = node.name == name or (case_insensitive and node.name.lower() == name.lower())

            if matched and (predicate is None or predicate(node)):
                return node

        if recursive:
            for directory in self.directories:
                found = directory.find(name, True, case_insensitive, predicate)

                if found is not None:
                    return found

        return None

    def find_all(self, predicate):
        found = [node for node in self.children if predicate(node)]

        for directory in self.directories:
            found += directory.find_all(predicate)

        return found
