# =============================================================================
# POLYMARKET CLAIM VALIDATOR - TEST SUITE
# =============================================================================
#
# Structure:
#   tests/
#     unit/           - Unit tests per module
#
# Usage:
#   pytest tests/
#   python run_tests.py --quick     # import smoke test only
#
# =============================================================================
