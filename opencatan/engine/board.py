"""Plateau de jeu Catane (géométrie standard à 19 tuiles).

Cette implémentation expose un plateau complet:
- coordonnées cube pour chaque tuile
- indexation déterministe des sommets/arêtes (géométrie pointy-top)
- attribution des numéros de production et des ports (9 ports, 5 spécifiques + 4 génériques)

Le plateau est immuable: la position du voleur et les constructions vivent
dans `GameState`. La génération aléatoire du plateau relève du lobby; le
moteur accepte une attribution fournie via `Board.from_layout()`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Sequence, Set, Tuple

from opencatan.engine.rules import RESOURCE_TYPES

Coord = Tuple[float, float]
EdgeCoord = Tuple[Coord, Coord]


@dataclass(frozen=True)
class CubeCoord:
    x: int
    y: int
    z: int


@dataclass(frozen=True)
class Tile:
    tile_id: int
    resource: str | None
    number: int | None
    cube: CubeCoord
    vertices: Tuple[int, ...]
    edges: Tuple[int, ...]


@dataclass(frozen=True)
class Vertex:
    vertex_id: int
    position: Coord
    adjacent_tiles: Tuple[int, ...]
    edges: Tuple[int, ...]


@dataclass(frozen=True)
class Edge:
    edge_id: int
    vertices: Tuple[int, int]
    tiles: Tuple[int, ...]


@dataclass(frozen=True)
class Port:
    port_id: int
    kind: str
    edge_id: int
    vertices: Tuple[int, int]


class Board:
    """Représentation immuable du plateau."""

    # Coordonnées des tuiles (spirale autour du centre)
    _TILE_CUBES: Tuple[Tuple[int, int, int], ...] = (
        (0, 0, 0),
        (1, -1, 0),
        (1, 0, -1),
        (0, 1, -1),
        (-1, 1, 0),
        (-1, 0, 1),
        (0, -1, 1),
        (2, -1, -1),
        (2, 0, -2),
        (1, 1, -2),
        (0, 2, -2),
        (-1, 2, -1),
        (-2, 2, 0),
        (-2, 1, 1),
        (-2, 0, 2),
        (-1, -1, 2),
        (0, -2, 2),
        (1, -2, 1),
        (2, -2, 0),
    )

    _STANDARD_RESOURCES: Tuple[str | None, ...] = (
        None,
        "ORE",
        "GRAIN",
        "WOOL",
        "BRICK",
        "LUMBER",
        "GRAIN",
        "LUMBER",
        "BRICK",
        "WOOL",
        "ORE",
        "GRAIN",
        "LUMBER",
        "BRICK",
        "WOOL",
        "LUMBER",
        "GRAIN",
        "WOOL",
        "ORE",
    )

    _STANDARD_NUMBERS: Tuple[int | None, ...] = (
        None, 5, 2, 6, 3, 8, 10, 9, 12, 11, 4, 8, 10, 9, 4, 5, 6, 3, 11,
    )

    # Positions des ports exprimées en coordonnées de sommets (pointy-top)
    _PORT_COORDS: Tuple[Tuple[Coord, Coord], ...] = (
        ((-4.330127, -0.5), (-3.464102, -1.0)),
        ((-2.598076, -3.5), (-1.732051, -4.0)),
        ((0.866025, -3.5), (1.732051, -4.0)),
        ((3.464102, -2.0), (3.464102, -1.0)),
        ((3.464102, 1.0), (4.330127, 0.5)),
        ((2.598076, 2.5), (2.598076, 3.5)),
        ((0.0, 4.0), (0.866025, 3.5)),
        ((-2.598076, 3.5), (-1.732051, 4.0)),
        ((-3.464102, 1.0), (-3.464102, 2.0)),
    )
    _STANDARD_PORT_KINDS: Tuple[str, ...] = (
        "ANY",
        "BRICK",
        "ANY",
        "ORE",
        "ANY",
        "WOOL",
        "ANY",
        "GRAIN",
        "LUMBER",
    )

    _SQRT3: float = math.sqrt(3.0)
    _ROUND_PRECISION = 6
    _VERTEX_OFFSETS: Tuple[Coord, ...] = tuple(
        (math.cos(math.radians(30 + 60 * k)), math.sin(math.radians(30 + 60 * k)))
        for k in range(6)
    )

    def __init__(
        self,
        tiles: Dict[int, Tile],
        vertices: Dict[int, Vertex],
        edges: Dict[int, Edge],
        ports: Iterable[Port],
    ) -> None:
        self.tiles: Dict[int, Tile] = tiles
        self.vertices: Dict[int, Vertex] = vertices
        self.edges: Dict[int, Edge] = edges
        self.ports: Tuple[Port, ...] = tuple(sorted(ports, key=lambda p: p.port_id))

    # -- API comptage --
    def tile_count(self) -> int:
        return len(self.tiles)

    def vertex_count(self) -> int:
        return len(self.vertices)

    def edge_count(self) -> int:
        return len(self.edges)

    # -- Requêtes d'adjacence --
    def desert_tile_id(self) -> int:
        """Retourne l'unique tuile sans ressource (position initiale du voleur)."""

        deserts = [tile_id for tile_id, tile in self.tiles.items() if tile.resource is None]
        if len(deserts) != 1:
            raise ValueError(f"Expected exactly one resource-less tile, found {len(deserts)}")
        return deserts[0]

    def neighbor_vertices(self, vertex_id: int) -> List[int]:
        """Retourne les sommets à distance 1 d'un sommet."""

        neighbors: List[int] = []
        for edge_id in self.vertices[vertex_id].edges:
            a, b = self.edges[edge_id].vertices
            neighbors.append(b if a == vertex_id else a)
        return neighbors

    def edges_sharing_vertex(self, edge_id: int, vertex_id: int) -> List[int]:
        """Arêtes (autres que `edge_id`) aboutissant au sommet donné."""

        return [e for e in self.vertices[vertex_id].edges if e != edge_id]

    def port_kinds_at(self, vertex_ids: Iterable[int]) -> Set[str]:
        """Types de ports accessibles depuis un ensemble de sommets."""

        owned: FrozenSet[int] = frozenset(vertex_ids)
        return {
            port.kind
            for port in self.ports
            if any(vertex in owned for vertex in port.vertices)
        }

    def producing_tiles(self, number: int) -> List[Tile]:
        """Tuiles productrices pour un total de dés donné (voleur non pris en compte)."""

        return [
            tile
            for tile in self.tiles.values()
            if tile.number == number and tile.resource is not None
        ]

    # -- Construction du plateau --
    @classmethod
    def standard(cls) -> "Board":
        """Plateau de référence (disposition fixe du livret de règles)."""

        return cls._build(
            cls._STANDARD_RESOURCES, cls._STANDARD_NUMBERS, cls._STANDARD_PORT_KINDS
        )

    @classmethod
    def from_layout(
        cls,
        resources: Sequence[str | None],
        numbers: Sequence[int | None],
        port_kinds: Sequence[str] | None = None,
    ) -> "Board":
        """Construit un plateau à partir d'une attribution fournie par le lobby.

        Args:
            resources: Ressource de chaque tuile (None = désert), dans l'ordre spirale
            numbers: Numéro de production de chaque tuile (None pour le désert)
            port_kinds: Type de chaque port ("ANY" ou ressource), positions fixes

        Raises:
            ValueError: Si l'attribution est incohérente
        """
        if len(resources) != len(cls._TILE_CUBES) or len(numbers) != len(cls._TILE_CUBES):
            raise ValueError(f"Layout must describe {len(cls._TILE_CUBES)} tiles")
        for resource, number in zip(resources, numbers):
            if resource is not None and resource not in RESOURCE_TYPES:
                raise ValueError(f"Unknown resource: {resource!r}")
            if resource is None and number is not None:
                raise ValueError("A resource-less tile cannot carry a number")
            if resource is not None and (number is None or not 2 <= number <= 12 or number == 7):
                raise ValueError(f"Invalid production number {number!r} for {resource}")
        if sum(1 for resource in resources if resource is None) != 1:
            raise ValueError("Layout must contain exactly one resource-less tile")

        kinds = tuple(port_kinds) if port_kinds is not None else cls._STANDARD_PORT_KINDS
        if len(kinds) != len(cls._PORT_COORDS):
            raise ValueError(f"Layout must describe {len(cls._PORT_COORDS)} ports")
        for kind in kinds:
            if kind != "ANY" and kind not in RESOURCE_TYPES:
                raise ValueError(f"Unknown port kind: {kind!r}")

        return cls._build(tuple(resources), tuple(numbers), kinds)

    @classmethod
    def _build(
        cls,
        resources: Sequence[str | None],
        numbers: Sequence[int | None],
        port_kinds: Sequence[str],
    ) -> "Board":
        tile_vertex_coords: Dict[int, Tuple[Coord, ...]] = {}
        tile_edge_coords: Dict[int, Tuple[EdgeCoord, ...]] = {}
        vertex_tiles: Dict[Coord, set[int]] = {}
        edge_tiles: Dict[EdgeCoord, set[int]] = {}

        def axial_to_pixel(q: int, r: int) -> Coord:
            x = cls._SQRT3 * (q + r / 2)
            y = 1.5 * r
            return x, y

        def round_coord(value: float) -> float:
            return round(value, cls._ROUND_PRECISION)

        # Pré-calcul sommets/arêtes pour chaque tuile
        for tile_id, (x, _, z) in enumerate(cls._TILE_CUBES):
            cx, cy = axial_to_pixel(x, z)
            corners: List[Coord] = []

            for dx, dy in cls._VERTEX_OFFSETS:
                coord = (round_coord(cx + dx), round_coord(cy + dy))
                corners.append(coord)
                vertex_tiles.setdefault(coord, set()).add(tile_id)

            tile_vertex_coords[tile_id] = tuple(corners)

            edges_for_tile: List[EdgeCoord] = []
            for idx in range(6):
                a = corners[idx]
                b = corners[(idx + 1) % 6]
                edge = (a, b) if a <= b else (b, a)
                edges_for_tile.append(edge)
                edge_tiles.setdefault(edge, set()).add(tile_id)
            tile_edge_coords[tile_id] = tuple(edges_for_tile)

        # Indexation déterministe
        vertex_coord_to_id = {coord: idx for idx, coord in enumerate(sorted(vertex_tiles))}
        edge_coord_to_id = {coord: idx for idx, coord in enumerate(sorted(edge_tiles))}

        vertex_edges_map: Dict[Coord, List[int]] = {coord: [] for coord in vertex_coord_to_id}
        for (a, b), edge_id in edge_coord_to_id.items():
            vertex_edges_map[a].append(edge_id)
            vertex_edges_map[b].append(edge_id)

        vertices: Dict[int, Vertex] = {
            vid: Vertex(
                vertex_id=vid,
                position=coord,
                adjacent_tiles=tuple(sorted(vertex_tiles[coord])),
                edges=tuple(sorted(vertex_edges_map[coord])),
            )
            for coord, vid in vertex_coord_to_id.items()
        }

        edges: Dict[int, Edge] = {}
        for (a, b), edge_id in edge_coord_to_id.items():
            va, vb = sorted((vertex_coord_to_id[a], vertex_coord_to_id[b]))
            edges[edge_id] = Edge(
                edge_id=edge_id,
                vertices=(va, vb),
                tiles=tuple(sorted(edge_tiles[(a, b)])),
            )

        tiles: Dict[int, Tile] = {}
        for tile_id, cube in enumerate(cls._TILE_CUBES):
            tiles[tile_id] = Tile(
                tile_id=tile_id,
                resource=resources[tile_id],
                number=numbers[tile_id],
                cube=CubeCoord(*cube),
                vertices=tuple(vertex_coord_to_id[c] for c in tile_vertex_coords[tile_id]),
                edges=tuple(edge_coord_to_id[e] for e in tile_edge_coords[tile_id]),
            )

        # Ports (positions fixes, types fournis)
        ports: List[Port] = []
        for port_id, (coord_a, coord_b) in enumerate(cls._PORT_COORDS):
            va, vb = sorted((vertex_coord_to_id[coord_a], vertex_coord_to_id[coord_b]))
            edge_coord = (coord_a, coord_b) if coord_a <= coord_b else (coord_b, coord_a)
            ports.append(
                Port(
                    port_id=port_id,
                    kind=port_kinds[port_id],
                    edge_id=edge_coord_to_id[edge_coord],
                    vertices=(va, vb),
                )
            )

        return cls(tiles=tiles, vertices=vertices, edges=edges, ports=ports)


__all__ = [
    "Board",
    "CubeCoord",
    "Tile",
    "Vertex",
    "Edge",
    "Port",
]
