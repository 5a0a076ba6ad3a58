"""
Skill Registry - catalog sync for skills and MCP connectors.

- skill_registry.core: errors, models, storage, manifest, settings, logging
- skill_registry.execution: bounded link validation and retry policy
- skill_registry.sync: catalog sources, dedup, partitioning, pipeline
- skill_registry.cli: ``skill-registry`` command line
"""

__version__ = "0.1.0"
