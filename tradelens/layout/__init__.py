"""Layout engines: force, packing, treemap, parallel axes and chords."""
