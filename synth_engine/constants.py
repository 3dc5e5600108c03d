"""Fixed-point constants shared by the solvency calculator and the engine."""

PRECISION = 10**18

# Share of collateral value counted toward solvency, in percent.
# 50 means positions must stay 200% collateralized.
LIQUIDATION_THRESHOLD = 50
LIQUIDATION_PRECISION = 100

# Premium paid to liquidators in seized collateral, in percent.
LIQUIDATION_BONUS = 10

MIN_HEALTH_FACTOR = 10**18

# Reported for positions with no debt.
MAX_HEALTH_FACTOR = 2**256 - 1
