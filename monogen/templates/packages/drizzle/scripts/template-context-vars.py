def get_context_vars(config, frameworks, packages):
    selection = config.selection_for("drizzle")
    provider = selection.extra_options.get("provider", "sqlite") if selection else "sqlite"
    return {"dialect": "postgresql" if provider == "postgres" else "sqlite"}
