"""
Primordium — Configuration
==========================
Flat set of named knobs. Class attributes are the defaults; instances take
keyword overrides and are validated on construction.
"""


class ConfigError(ValueError):
    pass


PRESETS = {
    "primordial_soup": {
        "description": "Shallow warm pools with frequent wet/dry cycling",
        "overrides": {
            "vent_count": 3, "vent_power": 8.0, "uv_intensity_max": 3.0,
            "diffusion_rate": 0.15, "wet_dry_period": 2000,
            "lightning_probability": 0.003,
        },
    },
    "hydrothermal_vent": {
        "description": "Dark deep ocean fed by many strong vents",
        "overrides": {
            "vent_count": 10, "vent_power": 20.0, "uv_intensity_max": 0.0,
            "diffusion_rate": 0.2, "redox_gradient_strength": 0.9,
        },
    },
    "ice_world": {
        "description": "Cold, slow chemistry under a frozen crust",
        "overrides": {
            "vent_count": 1, "vent_power": 3.0, "uv_intensity_max": 1.0,
            "diffusion_rate": 0.02, "wet_dry_period": 50000,
            "molecule_decay_rate": 0.00001,
        },
    },
    "tidal_flats": {
        "description": "Rapid tides, strong sunlight, autocatalysis favoured",
        "overrides": {
            "vent_count": 2, "vent_power": 5.0, "uv_intensity_max": 6.0,
            "diffusion_rate": 0.12, "wet_dry_period": 1000,
            "autocatalysis_boost": 3.0,
        },
    },
    "storm_planet": {
        "description": "Violent atmosphere: lightning, storms and impacts",
        "overrides": {
            "vent_count": 4, "vent_power": 12.0, "uv_intensity_max": 8.0,
            "lightning_probability": 0.02, "lightning_energy": 200.0,
            "electrical_storm_probability": 0.005,
            "asteroid_impact_rate": 0.000001,
        },
    },
}


class Config:
    # World
    world_size = 512.0
    tick_rate = 60
    grid_resolution = 64
    spatial_hash_cell_size = 16.0
    random_seed = 42

    # Chemistry
    initial_molecule_count = 1500
    max_entities = 5000
    max_molecule_complexity = 50
    reaction_distance = 2.0
    temperature_scale = 100.0          # zone temperature (0..1) -> chemistry degrees
    diffusion_rate = 0.1
    molecule_decay_rate = 0.0001
    source_energy_coupling = 0.001     # fraction of source output absorbed per tick
    condensation_wetness_max = 0.95
    hydrolysis_wetness_min = 0.4
    redox_bonus_threshold = -0.4
    redox_bonus_multiplier = 1.5
    autocatalysis_boost = 2.0
    redox_gradient_strength = 0.5
    zone_catalysis_weight = 0.5        # zone catalytic bias -> reaction probability boost

    # Energy sources
    vent_count = 6
    vent_power = 10.0
    uv_source_count = 3
    uv_intensity_max = 5.0

    # Environmental events
    lightning_probability = 0.002
    lightning_energy = 100.0
    electrical_storm_probability = 0.0005
    polymer_hydrolysis_rate = 0.0002
    uv_burst_probability = 0.00005
    heat_spike_probability = 0.00005

    # Cycles
    day_night_period = 1000
    seasonal_period = 20000
    wet_dry_period = 5000

    # Protocells
    membrane_formation_threshold = 20
    protocell_division_interior = 30
    protocell_division_replicators = 3
    max_protocells = 200
    max_replicators_per_cell = 16
    replicator_emergence_tick = 5000
    organism_emergence_age = 1000
    organism_emergence_probability = 0.01

    # Organisms
    max_population = 3000
    sensor_range = 15.0
    movement_energy_cost = 0.005
    offspring_energy_fraction = 0.5
    horizontal_transfer_rate = 0.001
    toxin_secretion_rate = 0.01
    spontaneous_generation_tick = 2000
    spontaneous_generation_interval = 500
    signal_threshold = 0.3             # |SIGNAL output| needed to broadcast
    signal_lifetime = 50               # ticks a signal stays audible

    # NEAT
    neat_weight_mutation_rate = 0.8
    neat_weight_perturbation = 0.1
    neat_add_connection_rate = 0.05
    neat_add_node_rate = 0.03
    neat_toggle_connection_rate = 0.01
    neat_c1 = 1.0
    neat_c2 = 1.0
    neat_c3 = 0.4

    # Evolution
    speciation_distance_threshold = 5.0

    # Extinction
    volcanic_eruption_rate = 0.000001
    asteroid_impact_rate = 0.0000001
    o2_toxicity_threshold = 0.3

    # Run
    total_ticks = 5000
    snapshot_interval = 500
    metrics_interval = 100
    output_dir = "output"

    _POSITIVE = (
        "world_size", "tick_rate", "grid_resolution", "spatial_hash_cell_size",
        "max_entities", "max_molecule_complexity", "reaction_distance",
        "temperature_scale", "autocatalysis_boost", "day_night_period",
        "seasonal_period", "wet_dry_period", "membrane_formation_threshold",
        "protocell_division_interior", "protocell_division_replicators",
        "max_protocells", "max_replicators_per_cell", "max_population",
        "sensor_range", "speciation_distance_threshold", "total_ticks",
        "snapshot_interval", "metrics_interval", "spontaneous_generation_interval",
        "redox_bonus_multiplier", "signal_lifetime",
    )
    _NON_NEGATIVE = (
        "initial_molecule_count", "molecule_decay_rate", "source_energy_coupling",
        "vent_count", "vent_power", "uv_source_count", "uv_intensity_max",
        "lightning_energy", "replicator_emergence_tick", "organism_emergence_age",
        "movement_energy_cost", "toxin_secretion_rate", "spontaneous_generation_tick",
        "neat_weight_perturbation", "neat_c1", "neat_c2", "neat_c3",
        "redox_gradient_strength", "zone_catalysis_weight", "signal_threshold",
    )
    _PROBABILITIES = (
        "diffusion_rate", "condensation_wetness_max", "hydrolysis_wetness_min",
        "lightning_probability", "electrical_storm_probability",
        "polymer_hydrolysis_rate", "uv_burst_probability", "heat_spike_probability",
        "organism_emergence_probability", "offspring_energy_fraction",
        "horizontal_transfer_rate", "neat_weight_mutation_rate",
        "neat_add_connection_rate", "neat_add_node_rate",
        "neat_toggle_connection_rate", "volcanic_eruption_rate",
        "asteroid_impact_rate", "o2_toxicity_threshold",
    )

    def __init__(self, **overrides):
        for name, value in overrides.items():
            if name.startswith("_") or not self._is_knob(name):
                raise ConfigError(f"unknown config knob '{name}'")
            setattr(self, name, value)
        self.validate()

    @classmethod
    def _is_knob(cls, name):
        return hasattr(cls, name) and not callable(getattr(cls, name))

    @classmethod
    def from_preset(cls, name, **overrides):
        if name not in PRESETS:
            known = ", ".join(sorted(PRESETS))
            raise ConfigError(f"unknown preset '{name}' (known: {known})")
        merged = dict(PRESETS[name]["overrides"])
        merged.update(overrides)
        return cls(**merged)

    def validate(self):
        for name in self._POSITIVE:
            value = getattr(self, name)
            if not value > 0:
                raise ConfigError(f"{name} must be positive, got {value!r}")
        for name in self._NON_NEGATIVE:
            value = getattr(self, name)
            if not value >= 0:
                raise ConfigError(f"{name} must be non-negative, got {value!r}")
        for name in self._PROBABILITIES:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must lie in [0, 1], got {value!r}")
        if self.hydrolysis_wetness_min > self.condensation_wetness_max:
            raise ConfigError(
                "hydrolysis_wetness_min must not exceed condensation_wetness_max "
                f"({self.hydrolysis_wetness_min} > {self.condensation_wetness_max})")
        if self.world_size < self.grid_resolution:
            raise ConfigError(
                f"world_size ({self.world_size}) must be at least grid_resolution "
                f"({self.grid_resolution})")
        if self.redox_bonus_threshold > 0:
            raise ConfigError(
                f"redox_bonus_threshold must be <= 0, got {self.redox_bonus_threshold!r}")
        return self

    def as_dict(self):
        return {name: getattr(self, name) for name in dir(type(self))
                if not name.startswith("_") and self._is_knob(name)}
