# Import main lazily to avoid circular dependencies
def __getattr__(name):
    if name == "main":
        from treasury.cli.main import main
        return main
    if name == "TreasuryEngine":
        from treasury.engine import TreasuryEngine
        return TreasuryEngine
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
