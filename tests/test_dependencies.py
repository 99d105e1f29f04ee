import numpy as np
from gridsim_tools.montecarlo.dependencies import (
    DependencyResolver,
    free_identifiers,
    function_namespace,
)

import trials


def test_helpers_are_followed_transitively():
    manifest = DependencyResolver().resolve(trials.deterministic)

    assert manifest.values["shifted"] is trials.shifted
    assert manifest.values["OFFSET"] == 10
    assert manifest.target_module == "trials"


def test_modules_become_imports():
    manifest = DependencyResolver().resolve(trials.decision)

    assert manifest.imports == {"np": "numpy", "math": "math"}
    assert {"numpy", "math"} <= manifest.packages
    assert manifest.values == {}


def test_objects_from_packages_record_their_package():
    manifest = DependencyResolver().resolve(trials.root)

    assert manifest.values["sqrt"] is trials.sqrt
    assert "math" in manifest.packages


def test_builtins_are_assumed_remote():
    manifest = DependencyResolver().resolve(trials.decision)
    assert "bool" not in manifest.values
    assert {"bool", "abs"} <= manifest.unresolved
    assert "builtins" not in manifest.packages


def test_unknown_identifiers_are_assumed_remote():
    manifest = DependencyResolver().resolve(trials.uses_unknown)
    assert manifest.unresolved == frozenset({"mystery_value"})


def test_mutual_recursion_terminates():
    manifest = DependencyResolver().resolve(trials.ping)
    assert set(manifest.values) == {"pong"}


def test_locals_are_not_free():
    def local(a, b=2):
        total = a + b
        squares = [x * x for x in range(total)]
        return {"s": np.sum(squares), "scale": SCALE}

    assert free_identifiers(local) == ["range", "np", "SCALE"]


def test_closure_variables_are_resolved():
    factor = 3

    def closure(n):
        return {"x": n * factor}

    assert function_namespace(closure)["factor"] == 3
    manifest = DependencyResolver().resolve(closure)
    assert manifest.values["factor"] == 3


def test_extend_adds_values_and_modules():
    manifest = DependencyResolver().resolve(trials.root)
    extended = manifest.extend(["OFFSET", "json", "np"], function_namespace(trials.decision))

    assert extended.values["OFFSET"] == 10
    assert "json" in extended.packages
    assert extended.imports["np"] == "numpy"
    assert "OFFSET" not in manifest.values


def test_extend_unknown_name_is_unresolved():
    manifest = DependencyResolver().resolve(trials.root)
    extended = manifest.extend(["no_such_module_or_value"], {})
    assert "no_such_module_or_value" in extended.unresolved


SCALE = 2.0
