"""Process graph: typed steps, snapshots, undo/redo history and the editing session."""
