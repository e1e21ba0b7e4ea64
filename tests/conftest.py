from hypothesis import settings

# Register *and* load a profile that disables per-example deadlines.
settings.register_profile("bncfg_no_deadline", deadline=None)
settings.load_profile("bncfg_no_deadline")
