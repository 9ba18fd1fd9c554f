"""YAML tree compiler -- discover, normalise, merge and validate fragments.

Typical usage::

    from specsmith.compiler import DocumentCompiler, discover

    compiler = DocumentCompiler("spec/api")
    document = compiler.compile(discover("spec/api"))

Sub-modules:

* :mod:`~specsmith.compiler.paths` -- classify files by their place in the tree.
* :mod:`~specsmith.compiler.loader` -- read YAML into
  :class:`~specsmith.models.SpecFragment` objects.
* :mod:`~specsmith.compiler.refs` -- expand shorthand schema names into ``$ref``.
* :mod:`~specsmith.compiler.merge` -- deep merge.
* :mod:`~specsmith.compiler.validation` -- OpenAPI 3.0 meta-schema validation.
* :mod:`~specsmith.compiler.document` -- the per-file pipeline and
  :class:`~specsmith.compiler.document.DocumentCompiler`.
"""

from specsmith.compiler.document import DocumentCompiler
from specsmith.compiler.merge import deep_merge
from specsmith.compiler.paths import classify, discover
from specsmith.compiler.refs import normalize_refs

__all__ = ["DocumentCompiler", "classify", "deep_merge", "discover", "normalize_refs"]
