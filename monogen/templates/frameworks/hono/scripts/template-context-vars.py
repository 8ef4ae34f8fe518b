"""Extra template variables for Hono apps."""


def get_context_vars(config, frameworks, packages):
    return {"use_zod_validator": config.selection_for("zod") is not None}
