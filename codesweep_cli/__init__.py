"""CodeSweep: dead-code and reachability analysis for JavaScript/TypeScript monorepos."""

__version__ = "2.0.0"
