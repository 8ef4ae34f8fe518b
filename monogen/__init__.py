"""monogen -- application generator for multi-package workspaces.

Scaffolds new applications (and optional shared packages) inside a monorepo
workspace from a catalog of framework and add-on package templates.

Quick usage::

    from monogen.config import GeneratorConfig
    from monogen.generator import Generator

    config = GeneratorConfig(app_name="my-api", framework="hono", port=4001)
    await Generator(config).run()
"""

__version__ = "0.1.0"
