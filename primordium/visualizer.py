"""
Primordium — Live Visualizer
============================
Renders a running simulation with Pygame. Reads only the simulation's query
surface between ticks.

Usage:
    pip install -e .[viz]
    python -m primordium --viz

Controls:
    SPACE      — Pause / Resume
    UP / DOWN  — Speed up / slow down (ticks per frame)
    1          — Toggle zone map underlay (shaded by wetness)
    2          — Toggle organic field
    3          — Toggle mineral field
    4          — Toggle signal field and signal rings
    5          — Toggle toxin field
    6          — Toggle molecules
    7          — Toggle protocells
    8          — Toggle organisms
    V          — Cycle organism coloring:
                   Metabolism → Energy → Species → Generation
    R          — Reset simulation (same config and seed)
    Q / ESC    — Quit
"""

import colorsys
import time as _time
from collections import namedtuple

import numpy as np
import pygame

from .environment import ZONE_NAMES
from .simulation import Simulation


# ═══════════════════════════════════════════════════════════════════════════════
# VISUALIZER CONFIG
# ═══════════════════════════════════════════════════════════════════════════════

VIEW_PX = 640             # World is drawn into a VIEW_PX × VIEW_PX square
STATS_WIDTH = 340
INITIAL_TICKS_PER_FRAME = 1

BG_COLOR = (8, 8, 12)

ZONE_COLORS = np.array([
    (10, 20, 60),     # deep ocean
    (90, 30, 20),     # hydrothermal vent
    (20, 70, 90),     # shallow pool
    (40, 70, 60),     # tidal zone
    (70, 45, 25),     # volcanic shore
    (70, 80, 95),     # ice region
], dtype=np.uint8)

ROLE_COLORS = {
    "food": (120, 200, 120),
    "waste": (90, 90, 90),
    "catalyst": (240, 200, 60),
    "membrane": (230, 150, 220),
    "genome_segment": (110, 170, 255),
    "toxin": (230, 70, 60),
    "unknown": (160, 160, 170),
}

METABOLISM_COLORS = {
    "photosynthesis": (60, 210, 90),
    "chemosynthesis": (80, 200, 200),
    "fermentation": (200, 160, 60),
    "heterotrophy": (230, 55, 55),
}

SIGNAL_RING = (255, 240, 150)

# Toggled by keys 1-8 in this order
LAYER_ORDER = ("zones", "organic", "mineral", "signal", "toxin",
               "molecules", "protocells", "organisms")


# ═══════════════════════════════════════════════════════════════════════════════
# FIELD LAYERS
# ═══════════════════════════════════════════════════════════════════════════════

def gradient(stops):
    """256-entry RGB table through (position, (r, g, b)) stops, interpolated per channel."""
    pos = np.array([p for p, _ in stops])
    rgb = np.array([c for _, c in stops], dtype=float)
    t = np.linspace(0.0, 1.0, 256)
    return np.stack([np.interp(t, pos, rgb[:, ch]) for ch in range(3)], axis=1).astype(np.uint8)


# `gamma` < 1 lifts faint concentrations; cells at or below `floor` stay unpainted
FieldLayer = namedtuple("FieldLayer", ["tag", "cmap", "vmax", "gamma", "floor"])

FIELD_LAYERS = {
    "organic": FieldLayer("organic", gradient([
        (0.0, (0, 0, 0)), (0.4, (40, 60, 10)), (1.0, (200, 220, 80))]), 2.0, 0.6, 0.02),
    "mineral": FieldLayer("mineral", gradient([
        (0.0, (0, 0, 0)), (0.5, (20, 60, 90)), (1.0, (120, 200, 255))]), 1.0, 0.7, 0.02),
    "signal": FieldLayer("signal", gradient([
        (0.0, (0, 0, 0)), (0.5, (90, 80, 20)), (1.0, (255, 240, 150))]), 0.2, 0.5, 0.001),
    "toxin": FieldLayer("toxin", gradient([
        (0.0, (0, 0, 0)), (0.3, (60, 8, 80)), (1.0, (220, 60, 255))]), 1.0, 1.0, 0.01),
}


def shade(grid, cmap, vmax, gamma=1.0):
    level = np.clip(grid / vmax, 0.0, 1.0) ** gamma
    return cmap[(level * 255).astype(np.uint8)]


def layer_grid(sim, layer):
    if layer.tag == "toxin":
        return sim.toxin_map()
    return sim.field_layer(layer.tag)


def compose(sim, layers):
    """The world grid as RGB: zone underlay plus the enabled field layers, added."""
    zones = sim.zone_map()
    if layers["zones"]:
        dampness = 0.55 + 0.45 * sim.wetness_map()
        rgb = (ZONE_COLORS[zones % len(ZONE_NAMES)] * dampness[..., None]).astype(np.int16)
    else:
        rgb = np.empty(zones.shape + (3,), dtype=np.int16)
        rgb[...] = BG_COLOR
    for name, layer in FIELD_LAYERS.items():
        if not layers[name]:
            continue
        grid = layer_grid(sim, layer)
        mask = grid > layer.floor
        rgb[mask] += shade(grid[mask], layer.cmap, layer.vmax, layer.gamma)
    return np.clip(rgb, 0, 255).astype(np.uint8)


def blit_grid(screen, rgb, size):
    # surfarray is indexed [x, y]
    surf = pygame.surfarray.make_surface(np.ascontiguousarray(rgb.transpose(1, 0, 2)))
    screen.blit(pygame.transform.scale(surf, (size, size)), (0, 0))


# ═══════════════════════════════════════════════════════════════════════════════
# ENTITY RENDERING
# ═══════════════════════════════════════════════════════════════════════════════

def species_color(species):
    # Golden-ratio hue steps keep neighbouring species ids apart
    hue = (species * 0.618033988749895) % 1.0
    r, g, b = colorsys.hsv_to_rgb(hue, 0.65, 0.95)
    return int(r * 255), int(g * 255), int(b * 255)


def organism_color(org, color_mode, max_gen):
    if color_mode == "metabolism":
        return METABOLISM_COLORS.get(org.metabolism_type, (200, 200, 200))
    if color_mode == "energy":
        cap = org.phenotype.energy_capacity
        e = min(1.0, max(0.0, org.energy / cap)) if cap > 0 else 0.0
        return (int(220 * (1.0 - e)), int(230 * e), int(160 * max(0.0, e - 0.6) / 0.4))
    if color_mode == "species":
        return species_color(org.species)
    g = org.generation / max(max_gen, 1)
    return (int(255 * g), int(180 + 75 * (1.0 - abs(g - 0.5) * 2)), int(255 * (1.0 - g)))


def draw_signals(surface, sim, scale):
    """Each live signal as a ring that widens and dims as it ages."""
    lifetime = sim.cfg.signal_lifetime
    for s in sim.signals:
        age = min(1.0, (sim.tick_count - s.tick) / lifetime)
        fade = 1.0 - age
        color = tuple(int(c * fade) for c in SIGNAL_RING)
        radius = max(2, int((2.0 + 10.0 * age) * s.intensity * scale))
        pygame.draw.circle(surface, color, (int(s.x * scale), int(s.y * scale)), radius, 1)


def draw_entities(surface, sim, scale, layers, color_mode):
    if layers["molecules"]:
        for mol in sim.molecules:
            color = ROLE_COLORS.get(mol.role, ROLE_COLORS["unknown"])
            size = 1 if len(mol.atoms) < 3 else 2
            surface.fill(color, (int(mol.x * scale), int(mol.y * scale), size, size))

    if layers["protocells"]:
        for cell in sim.protocells:
            radius = max(2, int(cell.size * scale * 2))
            color = (240, 170, 230) if cell.replicators else (170, 130, 200)
            pygame.draw.circle(surface, color, (int(cell.x * scale), int(cell.y * scale)), radius, 1)

    if layers["signal"]:
        draw_signals(surface, sim, scale)

    if layers["organisms"]:
        orgs = sim.organisms
        max_gen = max((o.generation for o in orgs), default=1)
        for org in orgs:
            radius = max(2, int(org.phenotype.body_radius * scale * 2))
            pygame.draw.circle(surface, organism_color(org, color_mode, max_gen),
                               (int(org.x * scale), int(org.y * scale)), radius)


# ═══════════════════════════════════════════════════════════════════════════════
# STATS PANEL
# ═══════════════════════════════════════════════════════════════════════════════

def draw_stats_panel(surface, sim, x_offset, color_mode, ticks_per_frame,
                     paused, layers, elapsed):
    font = pygame.font.SysFont("monospace", 12)

    panel_rect = pygame.Rect(x_offset, 0, STATS_WIDTH, surface.get_height())
    pygame.draw.rect(surface, (15, 15, 22), panel_rect)
    pygame.draw.line(surface, (60, 60, 80), (x_offset, 0), (x_offset, surface.get_height()), 2)

    stats = sim.get_stats()
    s = stats["metrics"]
    lines = []

    lines.append(("PRIMORDIUM", (200, 180, 255)))
    lines.append((f"seed {sim.seed}", (140, 130, 170)))
    lines.append(("", None))

    state = "▐▐ PAUSED" if paused else f"▶ {ticks_per_frame} ticks/frame"
    lines.append((f"t = {sim.tick_count:,}   {state}", (255, 255, 255)))
    lines.append((f"Sim time: {elapsed:.1f}s", (150, 150, 150)))
    lines.append(("", None))

    # ── Chemistry ──
    lines.append(("─── Chemistry ───", (255, 180, 80)))
    lines.append((f"  Molecules:  {stats['molecules']:,}", (255, 255, 255)))
    if s:
        lines.append((f"  Reactions:  {s.get('reactions', 0):,}", (200, 200, 200)))
        lines.append((f"  Avg size:   {s.get('avg_mol_size', 0):.2f} atoms", (200, 200, 200)))
    lines.append((f"  Protocells: {stats['protocells']:,}", (230, 150, 220)))
    lines.append(("", None))

    # ── Life ──
    lines.append(("─── Life ───", (100, 180, 255)))
    lines.append((f"  Alive:   {stats['population']:,}", (255, 255, 255)))
    lines.append((f"  Species: {stats['species']}", (180, 180, 230)))
    if s:
        lines.append((f"  Energy:  {s.get('avg_energy', 0):5.2f} avg", (180, 230, 180)))
        lines.append((f"  Gen:     {s.get('max_gen', 0)}", (180, 180, 230)))
        lines.append((f"  Kills:   {s.get('total_kills', 0):,}", (255, 120, 120)))
        lines.append((f"  Bonds:   {s.get('symbiotic_bonds', 0)}", (120, 220, 180)))
    lines.append(("", None))

    # ── Communication ──
    comm = sim.communication.summary()
    lines.append(("─── Communication ───", SIGNAL_RING))
    lines.append((f"  Live:      {comm['active']:,}", (255, 255, 255)))
    lines.append((f"  Heard:     {comm['heard']:,} of {comm['emitted']:,}", (220, 210, 150)))
    lines.append((f"  Protocols: {comm['protocols']}", (220, 210, 150)))
    lines.append(("", None))

    # ── Ecology ──
    lines.append(("─── Ecology ───", (100, 220, 130)))
    lines.append((f"  O2:        {stats['oxygen_level']:.3f}", (160, 220, 255)))
    if s:
        lines.append((f"  Diversity: {s.get('diversity', 0):.2f}", (200, 200, 200)))
        lines.append((f"  Trophic:   {s.get('trophic_levels', 0)} levels", (200, 200, 200)))
        if s.get("extinction"):
            lines.append((f"  !! {s['extinction']} event", (255, 80, 80)))
    lines.append((f"  Total E:   {stats['total_energy']:.0f}", (220, 220, 140)))
    lines.append(("", None))

    # ── Milestones (latest few) ──
    lines.append(("─── Milestones ───", (200, 180, 100)))
    for m in stats["milestones"][-6:]:
        lines.append((f"  {m['tick']:6d} {m['type']}", (220, 200, 120)))
    lines.append(("", None))

    # ── Layers ──
    lines.append(("─── Layers ───", (150, 150, 150)))
    for i, key in enumerate(LAYER_ORDER, 1):
        name = f"{i}:{key.capitalize()}"
        on = layers[key]
        lines.append((f"  {'●' if on else '○'} {name}", (180, 255, 180) if on else (80, 80, 80)))
    lines.append((f"  Color: {color_mode}", (200, 200, 255)))
    lines.append(("", None))

    # ── Controls ──
    lines.append(("─── Controls ───", (120, 120, 120)))
    for ctrl in ["SPACE  Pause/Resume", "UP/DN  Speed +/-",
                 "1-8    Toggle layers", "V      Cycle colors",
                 "R      Reset", "Q/ESC  Quit"]:
        lines.append((f"  {ctrl}", (100, 100, 110)))

    y = 10
    for text, color in lines:
        if color is None:
            y += 5
            continue
        surf = font.render(text, True, color)
        surface.blit(surf, (x_offset + 10, y))
        y += 16


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN LOOP
# ═══════════════════════════════════════════════════════════════════════════════

def run_viewer(sim, ticks=None):
    """Drive `sim` interactively until quit (or `ticks` reached). Returns the simulation."""
    cfg = sim.cfg
    pygame.init()
    pygame.display.set_caption("Primordium")

    screen = pygame.display.set_mode((VIEW_PX + STATS_WIDTH, VIEW_PX))
    clock = pygame.time.Clock()
    scale = VIEW_PX / cfg.world_size

    paused = False
    ticks_per_frame = INITIAL_TICKS_PER_FRAME
    color_modes = ["metabolism", "energy", "species", "generation"]
    color_idx = 0
    layers = {key: key not in ("mineral", "toxin") for key in LAYER_ORDER}
    toggles = {pygame.K_1 + i: key for i, key in enumerate(LAYER_ORDER)}

    sim_start = _time.time()
    running = True

    while running:
        # ── Events ───────────────────────────────────────────────────────
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key in (pygame.K_q, pygame.K_ESCAPE):
                    running = False
                elif event.key == pygame.K_SPACE:
                    paused = not paused
                elif event.key == pygame.K_UP:
                    ticks_per_frame = min(ticks_per_frame + 1, 50)
                elif event.key == pygame.K_DOWN:
                    ticks_per_frame = max(ticks_per_frame - 1, 1)
                elif event.key == pygame.K_v:
                    color_idx = (color_idx + 1) % len(color_modes)
                elif event.key == pygame.K_r:
                    sim = Simulation(cfg, sim.seed)
                    sim_start = _time.time()
                elif event.key in toggles:
                    key = toggles[event.key]
                    layers[key] = not layers[key]

        # ── Simulation ───────────────────────────────────────────────────
        if not paused:
            for _ in range(ticks_per_frame):
                sim.tick()
                if ticks is not None and sim.tick_count >= ticks:
                    paused = True
                    break

        elapsed = _time.time() - sim_start

        # ── Render ───────────────────────────────────────────────────────
        screen.fill(BG_COLOR)
        blit_grid(screen, compose(sim, layers), VIEW_PX)

        draw_entities(screen, sim, scale, layers, color_modes[color_idx])
        draw_stats_panel(screen, sim, VIEW_PX, color_modes[color_idx], ticks_per_frame,
                         paused, layers, elapsed)

        pygame.display.flip()
        clock.tick(cfg.tick_rate)

    pygame.quit()
    return sim
