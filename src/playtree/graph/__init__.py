from .loader import load_playtree_file, playtree_from_mapping, playtree_to_mapping, save_playtree_file

__all__ = [
    "load_playtree_file",
    "playtree_from_mapping",
    "playtree_to_mapping",
    "save_playtree_file",
]
