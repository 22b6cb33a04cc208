# ==============================================================================
# Pacing
# ==============================================================================

# One engine tick is one virtual second of battle.
BATTLE_TICK_MS = 1000

# Upper bound on ticks processed per animation frame by the runner.
MAX_TICKS_PER_FRAME = 10

# ==============================================================================
# Morale & routing
# ==============================================================================

# Units at or below this morale route; squads averaging below it break.
ROUT_MORALE_THRESHOLD = 28

# Squads whose alive ratio drops below this break.
SURVIVE_THRESHOLD = 0.35

# Morale lost by every other living unit when a squad mate is killed.
TEAM_SHOCK_MORALE_PENALTY = 4

# Tunable: chance a routing shooter skips its shot even when allowed to fire.
ROUTING_SKIP_FIRE_CHANCE = 0.55

# Tunable: per-routing-unit chance of a straggler attrition hit during rout.
STRAGGLER_ATTRITION_CHANCE = 0.18

# ==============================================================================
# Volleys
# ==============================================================================

# Every shot lands on a roll at or below this, whatever the shooter and target.
HIT_CHANCE = 0.95

# ==============================================================================
# Phase thresholds
# ==============================================================================

CONTACT_SCORE_THRESHOLD = 50
FIRE_GAP_TO_MANEUVER = 30
FIRE_GAP_BACK_TO_FIRE = 15

# ==============================================================================
# Squad aggregates
# ==============================================================================

COHESION_SUPPRESSION_WEIGHT = 0.45
FIRE_ADVANTAGE_LIMIT = 200
PASSIVE_SUPPRESSION_DECAY = 2

MAX_LOG_ENTRIES = 160
