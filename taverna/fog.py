"""Fog of war for map scenes.

The fog is a grid of booleans, `height` rows by `width` columns, where True
means "revealed to players". New scenes start fully hidden.
"""


def blank_grid(height, width):
    return [[False] * width for _ in range(height)]


def reveal_cells(grid, cells):
    """Return a copy of grid with the given {row, col} cells revealed.

    Cells that fall outside the grid are skipped without complaint, and
    revealing an already-revealed cell changes nothing.
    """
    # Copy rows so the JSON column is assigned a new object
    updated = [list(row) for row in (grid or [])]
    for cell in cells:
        row, col = cell['row'], cell['col']
        if 0 <= row < len(updated) and 0 <= col < len(updated[row]):
            updated[row][col] = True
    return updated


def reset_fog(scene):
    """Hide everything again, sized to the scene's current dimensions."""
    scene.fog_revealed = blank_grid(scene.height, scene.width)
    return scene.fog_revealed


def scene_for_viewer(scene, is_dm):
    """Serialize a scene for one viewer. Players never receive hidden
    tokens or DM-only drawings."""
    if is_dm:
        return scene.to_dict()
    return scene.to_dict(
        tokens=[t for t in scene.tokens if not t.hidden],
        drawings=[d for d in scene.drawings if d.visible],
    )
