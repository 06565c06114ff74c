"""
livecalc unit test suite.

Every test builds its own CalcConfig and evaluator objects; nothing reads the
user's ~/.livecalc/config or LIVECALC_* environment variables unless the test
supplies them explicitly.
"""
