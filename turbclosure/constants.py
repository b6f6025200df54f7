"""
Global constants for the turbulence closures.

Field names, realizability floors and tensor layout conventions shared by
every closure variant.
"""

# Transported scalar names
K = "k"
OMEGA = "omega"
V2 = "v2"
KL = "kl"
GAMMA = "gamma"

# Realizability floors (field units)
K_MIN = 1e-15
OMEGA_MIN = 1e-15
V2_MIN = 1e-15
KL_MIN = 1e-15
OMEGA_MAX = 1e15

# Intermittency bounds
GAMMA_MIN = 0.0
GAMMA_MAX = 1.0

# Guards for divisions by small strain/rotation/distance magnitudes
SMALL = 1e-15
VSMALL = 1e-300
Y_MIN = 1e-12
