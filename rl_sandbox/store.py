"""
Named model stores used to persist agent state between sessions.

A store maps a name to a state mapping (torch state dicts, Q-tables, ...).
Loading a name that was never saved returns None rather than raising.
"""

import copy
import os
from pathlib import Path

import torch


class ModelStore:
    """Abstract named model store."""

    def save(self, name, state):
        """
        Persist a state mapping under ``name``, replacing any previous entry.

        Args:
            name (str): Entry name
            state (dict): Mapping of tensors and plain Python values
        """
        raise NotImplementedError

    def load(self, name):
        """
        Fetch the state mapping saved under ``name``.

        Returns:
            dict or None: The saved state, or None if the entry is absent
        """
        raise NotImplementedError

    def exists(self, name):
        return self.load(name) is not None


class MemoryModelStore(ModelStore):
    """In-process store; entries are deep copies so later training can't alter them."""

    def __init__(self):
        self.entries = {}

    def save(self, name, state):
        self.entries[name] = copy.deepcopy(state)

    def load(self, name):
        if name not in self.entries:
            return None
        return copy.deepcopy(self.entries[name])

    def exists(self, name):
        return name in self.entries


class FileModelStore(ModelStore):
    """
    Directory-backed store writing one ``<name>.pth`` file per entry.

    Writes go through a temporary file and an atomic rename so an interrupted
    save never leaves a truncated entry behind.
    """

    def __init__(self, directory):
        self.directory = Path(directory)

    def path_for(self, name):
        return self.directory / f"{name}.pth"

    def save(self, name, state):
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name)
        temp_path = str(path) + ".tmp"
        torch.save(state, temp_path)
        os.replace(temp_path, path)

    def load(self, name):
        path = self.path_for(name)
        if not path.exists():
            return None
        return torch.load(path, weights_only=True)

    def exists(self, name):
        return self.path_for(name).exists()
