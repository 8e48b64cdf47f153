"""
GitGate release gateway application package.
"""
