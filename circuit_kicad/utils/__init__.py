"""
KiCad element-tree text codec and node builders.
"""
