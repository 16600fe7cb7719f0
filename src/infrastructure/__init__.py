"""
infrastructure - Concrete implementations of domain ports.

Contains all vendor-specific code: LangChain chat models and embeddings,
the numpy-backed semantic memory index, and environment configuration.
Depends on domain/ only (implements ports). Never imported by agent/.
"""
