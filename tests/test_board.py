"""Tests du plateau standard et des plateaux fournis par le lobby."""

from __future__ import annotations

import pytest

from opencatan.engine.board import Board
from opencatan.engine.rules import RESOURCE_TYPES

STANDARD_RESOURCES = [
    None, "ORE", "GRAIN", "WOOL", "BRICK", "LUMBER", "GRAIN", "LUMBER", "BRICK", "WOOL",
    "ORE", "GRAIN", "LUMBER", "BRICK", "WOOL", "LUMBER", "GRAIN", "WOOL", "ORE",
]
STANDARD_NUMBERS = [None, 5, 2, 6, 3, 8, 10, 9, 12, 11, 4, 8, 10, 9, 4, 5, 6, 3, 11]


@pytest.fixture(scope="module")
def board() -> Board:
    return Board.standard()


def test_standard_board_counts(board: Board) -> None:
    assert board.tile_count() == 19
    assert board.vertex_count() == 54
    assert board.edge_count() == 72
    assert len(board.ports) == 9


def test_desert_is_center_tile(board: Board) -> None:
    assert board.desert_tile_id() == 0
    assert board.tiles[0].resource is None
    assert board.tiles[0].number is None


def test_center_tile_geometry(board: Board) -> None:
    """Indexation déterministe: mêmes identifiants que la géométrie de référence."""

    assert set(board.tiles[0].vertices) == {20, 21, 26, 27, 32, 33}
    assert set(board.tiles[0].edges) == {29, 30, 31, 38, 40, 46}
    assert board.vertices[21].adjacent_tiles == (0, 4, 5)
    assert board.edges[31].vertices == (21, 27)


def test_every_vertex_touches_one_to_three_tiles(board: Board) -> None:
    for vertex in board.vertices.values():
        assert 1 <= len(vertex.adjacent_tiles) <= 3
        assert 2 <= len(vertex.edges) <= 3


def test_neighbor_vertices_are_symmetric(board: Board) -> None:
    for vertex_id in board.vertices:
        for neighbor in board.neighbor_vertices(vertex_id):
            assert vertex_id in board.neighbor_vertices(neighbor)


def test_edges_sharing_vertex_excludes_edge_itself(board: Board) -> None:
    shared = board.edges_sharing_vertex(31, 21)
    assert 31 not in shared
    assert set(shared) == {23, 29}


def test_producing_tiles_ignores_desert(board: Board) -> None:
    assert sorted(tile.tile_id for tile in board.producing_tiles(8)) == [5, 11]
    assert board.producing_tiles(7) == []


def test_port_kinds_at_vertices(board: Board) -> None:
    # Port générique entre les sommets 0 et 3, port brique entre 6 et 12
    assert board.port_kinds_at([3]) == {"ANY"}
    assert board.port_kinds_at([6, 0]) == {"ANY", "BRICK"}
    assert board.port_kinds_at([20, 21]) == set()


def test_standard_port_distribution(board: Board) -> None:
    kinds = [port.kind for port in board.ports]
    assert kinds.count("ANY") == 4
    assert sorted(kind for kind in kinds if kind != "ANY") == sorted(RESOURCE_TYPES)


def test_from_layout_matches_standard(board: Board) -> None:
    custom = Board.from_layout(STANDARD_RESOURCES, STANDARD_NUMBERS)
    assert [t.resource for t in custom.tiles.values()] == [t.resource for t in board.tiles.values()]
    assert [t.number for t in custom.tiles.values()] == [t.number for t in board.tiles.values()]


def test_from_layout_moves_desert() -> None:
    resources = list(STANDARD_RESOURCES)
    numbers = list(STANDARD_NUMBERS)
    resources[0], resources[3] = resources[3], resources[0]
    numbers[0], numbers[3] = numbers[3], numbers[0]

    custom = Board.from_layout(resources, numbers)

    assert custom.desert_tile_id() == 3


@pytest.mark.parametrize(
    "resources, numbers, message",
    [
        (STANDARD_RESOURCES[:-1], STANDARD_NUMBERS[:-1], "19 tiles"),
        (["SAND"] + STANDARD_RESOURCES[1:], STANDARD_NUMBERS, "Unknown resource"),
        (STANDARD_RESOURCES, [7] + STANDARD_NUMBERS[1:], "cannot carry a number"),
        (STANDARD_RESOURCES, [None, 7] + STANDARD_NUMBERS[2:], "Invalid production number"),
        (["ORE"] + STANDARD_RESOURCES[1:], [5] + STANDARD_NUMBERS[1:], "exactly one"),
    ],
)
def test_from_layout_rejects_inconsistent_layouts(resources, numbers, message) -> None:
    with pytest.raises(ValueError, match=message):
        Board.from_layout(resources, numbers)


def test_from_layout_validates_ports() -> None:
    with pytest.raises(ValueError, match="9 ports"):
        Board.from_layout(STANDARD_RESOURCES, STANDARD_NUMBERS, ["ANY"] * 8)
    with pytest.raises(ValueError, match="Unknown port kind"):
        Board.from_layout(STANDARD_RESOURCES, STANDARD_NUMBERS, ["GOLD"] * 9)
