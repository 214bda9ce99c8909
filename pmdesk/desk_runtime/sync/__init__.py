"""Git synchronization for registered repositories.

This package contains:

- **gitops**: async wrappers around the ``git`` command-line client
- **credentials**: pluggable credential provider (anonymous by default)
- **engine**: create / clone / pull / status on top of the registry
- **watcher**: periodic background status checks
"""
