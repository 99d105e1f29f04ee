"""Dependency discovery for shipping trial functions to worker processes.

Worker processes only see what is importable or explicitly provisioned, so
before a pool starts the trial function is analysed statically: the free
identifiers of its source are resolved in the namespace it was defined in,
user helpers are followed transitively, and module references are recorded
as imports. The result is an immutable `ProvisioningManifest` which the pool
applies once in each worker.

Resolution is best-effort. Identifiers that cannot be resolved (builtins,
names only defined on the worker) are recorded as unresolved and assumed to
be available remotely. Values that cannot be pickled are skipped the same
way.

Typical usage example:

    from gridsim_tools.montecarlo.dependencies import DependencyResolver

    manifest = DependencyResolver().resolve(trial)
    manifest.imports    # {'np': 'numpy'}
    manifest.values     # {'helper': <function helper>, 'SCALE': 2.0}
"""

import ast
import builtins
import importlib.util
import inspect
import logging
import pickle
import textwrap
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable


USER_MODULES = ("__main__", "__mp_main__")


@dataclass(frozen=True)
class ProvisioningManifest:
    """Everything a worker needs besides the trial function itself.

    Attributes:
        target_module (str): Module whose namespace the trial function
            resolves its globals in; values and imports are bound there.
        values (dict[str, Any]): Named user values and helper functions.
        imports (dict[str, str]): Alias to module name, e.g. ``np -> numpy``.
        packages (frozenset[str]): Top-level packages required on workers.
        unresolved (frozenset[str]): Identifiers assumed available remotely.
    """
    target_module: str
    values: dict[str, Any] = field(default_factory=dict)
    imports: dict[str, str] = field(default_factory=dict)
    packages: frozenset[str] = frozenset()
    unresolved: frozenset[str] = frozenset()

    def extend(self, names: Iterable[str], namespace: dict) -> "ProvisioningManifest":
        """Return a new manifest with explicitly exported names added.

        A name bound in ``namespace`` is exported as a value (or as an import
        when bound to a module). Otherwise it is treated as a module name to
        import on every worker.
        """
        values = dict(self.values)
        imports = dict(self.imports)
        packages = set(self.packages)
        unresolved = set(self.unresolved)

        for name in names:
            if name in namespace:
                obj = namespace[name]
                if inspect.ismodule(obj):
                    imports[name] = obj.__name__
                    packages.add(_top_level(obj.__name__))
                else:
                    values[name] = obj
                    owner = getattr(obj, "__module__", None)
                    if owner and owner != "builtins" \
                            and _top_level(owner) not in _user_tops(self.target_module):
                        packages.add(_top_level(owner))
            elif importlib.util.find_spec(_top_level(name)) is not None:
                packages.add(name)
            else:
                logging.warning(f"Export '{name}' is neither defined nor importable.")
                unresolved.add(name)

        return ProvisioningManifest(
            target_module=self.target_module,
            values=values,
            imports=imports,
            packages=frozenset(packages),
            unresolved=frozenset(unresolved),
        )


def _top_level(module_name: str) -> str:
    return module_name.split(".")[0]


def _user_tops(target_module: str) -> set[str]:
    return {_top_level(target_module), *USER_MODULES}


class _FreeNames(ast.NodeVisitor):
    """Collects loaded names and locally bound names of a function body."""

    def __init__(self):
        self.loaded: list[str] = []
        self.bound: set[str] = set()

    def visit_Name(self, node: ast.Name):
        if isinstance(node.ctx, ast.Load):
            if node.id not in self.loaded:
                self.loaded.append(node.id)
        else:
            self.bound.add(node.id)

    def visit_arg(self, node: ast.arg):
        self.bound.add(node.arg)
        self.generic_visit(node)

    def visit_FunctionDef(self, node):
        self.bound.add(node.name)
        self.generic_visit(node)

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_ClassDef(self, node: ast.ClassDef):
        self.bound.add(node.name)
        self.generic_visit(node)

    def visit_Import(self, node):
        for alias in node.names:
            self.bound.add(alias.asname or alias.name.split(".")[0])

    visit_ImportFrom = visit_Import

    def visit_ExceptHandler(self, node: ast.ExceptHandler):
        if node.name:
            self.bound.add(node.name)
        self.generic_visit(node)

    def free(self) -> list[str]:
        return [name for name in self.loaded if name not in self.bound]


def free_identifiers(func: Callable) -> list[str]:
    """Free identifiers referenced by ``func``, in order of first use.

    Parses the function's source. When the source is unavailable or cannot
    be parsed on its own (e.g. a lambda in the middle of an expression), the
    names recorded on the code object are used instead.
    """
    try:
        source = textwrap.dedent(inspect.getsource(func))
        tree = ast.parse(source)
    except (OSError, TypeError, SyntaxError):
        code = getattr(func, "__code__", None)
        if code is None:
            return []
        logging.debug(f"No parsable source for {func!r}; using code object names.")
        return list(dict.fromkeys(code.co_names + code.co_freevars))

    visitor = _FreeNames()
    visitor.visit(tree)
    return visitor.free()


def function_namespace(func: Callable) -> dict:
    """Globals of ``func`` overlaid with its closure variables."""
    namespace = dict(getattr(func, "__globals__", {}))
    if getattr(func, "__closure__", None):
        namespace.update(inspect.getclosurevars(func).nonlocals)
    return namespace


class DependencyResolver:
    """Computes the transitive dependency closure of a trial function.

    The analysis is pure: nothing is imported or modified. Helper functions
    defined in the trial function's own module (or in ``__main__``) are
    recursed into, cycles are cut by a visited set.
    """

    def resolve(self, func: Callable) -> ProvisioningManifest:
        """Analyse ``func`` and return its provisioning manifest.

        Args:
            func (Callable): The trial function.

        Returns:
            ProvisioningManifest: Values, imports and packages referenced by
                ``func`` and, transitively, by the helpers it calls.
        """
        target = getattr(func, "__module__", None) or "__main__"
        user_tops = _user_tops(target)

        values: dict[str, Any] = {}
        imports: dict[str, str] = {}
        packages: set[str] = set()
        unresolved: set[str] = set()

        visited: set[int] = set()
        stack = [func]

        while stack:
            current = stack.pop()
            if id(current) in visited:
                continue
            visited.add(id(current))

            namespace = function_namespace(current)
            for name in free_identifiers(current):
                if name in namespace:
                    obj = namespace[name]
                elif hasattr(builtins, name):
                    unresolved.add(name)
                    continue
                else:
                    logging.debug(f"Unresolved identifier '{name}' assumed available on workers.")
                    unresolved.add(name)
                    continue

                if obj is func:
                    continue

                if inspect.ismodule(obj):
                    imports[name] = obj.__name__
                    packages.add(_top_level(obj.__name__))
                    continue

                owner = getattr(obj, "__module__", None)
                is_user = owner is None or _top_level(owner) in user_tops

                if inspect.isfunction(obj) and is_user:
                    stack.append(obj)
                    if _picklable(obj):
                        values[name] = obj
                    else:
                        # Nested helpers only exist inside their enclosing call.
                        logging.warning(f"Helper '{name}' is not importable and will not be exported.")
                        unresolved.add(name)
                    continue

                if owner == "builtins":
                    if not _picklable(obj):
                        unresolved.add(name)
                        continue
                    values[name] = obj
                    continue

                if not _picklable(obj):
                    logging.warning(f"Value '{name}' cannot be pickled and will not be exported.")
                    unresolved.add(name)
                    continue

                values[name] = obj
                if not is_user:
                    packages.add(_top_level(owner))

        return ProvisioningManifest(
            target_module=target,
            values=values,
            imports=imports,
            packages=frozenset(packages),
            unresolved=frozenset(unresolved),
        )


def _picklable(obj) -> bool:
    try:
        pickle.dumps(obj)
    except Exception:
        return False
    return True
