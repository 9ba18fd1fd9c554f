"""specsmith -- Compile a tree of YAML fragments into versioned OpenAPI documents.

An API is described one small file at a time: each operation lives at
``<root>/<path>/<verb>.yml`` (draft) with dated revisions under
``<root>/<path>/<verb>/<version>.yml``, and shared components, ``info`` and
server blocks live beside them. specsmith merges the tree into one OpenAPI 3.0
document per version, expanding shorthand schema names into ``$ref`` pointers,
and validates the result against the OpenAPI 3.0 meta-schema.

Typical workflow::

    specsmith versions                 # list dated versions
    specsmith show 'GET /widgets'      # inspect one resolved operation
    specsmith build --output openapi   # write draft.json, 20210101.json, ...

Modules:
    app: Typer application and CLI entry point.
    compiler: Discovery, normalisation, merging and validation of fragments.
    versions: Version index and per-version static documents.
    template: Operation templates resolved for a version.
    writer: Per-version document assembly and output.
    models: Pydantic models shared across the package.
    config: Settings resolution and atomic writes.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
