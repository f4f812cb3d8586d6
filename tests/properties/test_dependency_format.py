"""Property-based tests for dependency declarations in pyproject.toml."""

import re
from pathlib import Path

import tomli
from hypothesis import given
from hypothesis import strategies as st

# PEP 508 name, optional extras, optional comma-separated version specifiers
DEPENDENCY_PATTERN = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9._-]*[a-zA-Z0-9])?"
    r"(\[[a-zA-Z0-9,_-]+\])?"
    r"(([><=!~]+[0-9][a-zA-Z0-9.*+-]*(,[><=!~]+[0-9][a-zA-Z0-9.*+-]*)*)?)?$"
)

# Import name -> distribution name for every third-party import in the package
RUNTIME_IMPORTS = {
    "typer": "typer",
    "rich": "rich",
    "pydantic": "pydantic",
    "ruamel": "ruamel.yaml",
    "requests": "requests",
}


def load_pyproject_toml():
    """Load the pyproject.toml file."""
    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    with open(pyproject_path, "rb") as f:
        return tomli.load(f)


def is_valid_dependency_format(dep: str) -> bool:
    return bool(DEPENDENCY_PATTERN.match(dep.strip()))


def dependency_name(dep: str) -> str:
    return re.split(r"[><=!~\[]", dep)[0].strip().lower()


def test_dependency_format_compliance():
    """Every declared dependency uses a PEP 508 specifier."""
    pyproject = load_pyproject_toml()

    dependencies = pyproject.get("project", {}).get("dependencies", [])
    assert len(dependencies) > 0, "Project should have dependencies defined"

    for dep in dependencies:
        assert is_valid_dependency_format(dep), f"Dependency '{dep}' is not PEP 508"

    optional_deps = pyproject.get("project", {}).get("optional-dependencies", {})
    for group_name, group_deps in optional_deps.items():
        for dep in group_deps:
            assert is_valid_dependency_format(dep), (
                f"Optional dependency '{dep}' in group '{group_name}' is not PEP 508"
            )


def test_every_runtime_import_is_declared():
    """Each third-party library imported by colimalab is a declared dependency."""
    package_dir = Path(__file__).parent.parent.parent / "colimalab"
    source = "\n".join(p.read_text() for p in package_dir.rglob("*.py"))
    declared = {
        dependency_name(d) for d in load_pyproject_toml()["project"]["dependencies"]
    }

    for import_name, distribution in RUNTIME_IMPORTS.items():
        if re.search(rf"^\s*(import|from) {import_name}\b", source, re.MULTILINE):
            assert distribution in declared, f"'{distribution}' is imported but not declared"


@given(
    package_name=st.from_regex(
        r"^[a-zA-Z0-9]([a-zA-Z0-9._-]*[a-zA-Z0-9])?$", fullmatch=True
    ).filter(lambda x: x.isascii()),
    version=st.from_regex(r"^[0-9]+\.[0-9]+\.[0-9]+$", fullmatch=True).filter(
        lambda x: x.isascii()
    ),
    operator=st.sampled_from([">=", "==", "~=", ">", "<", "!="]),
)
def test_valid_dependency_formats_accepted(package_name, version, operator):
    dep = f"{package_name}{operator}{version}"
    assert is_valid_dependency_format(dep), f"Valid dependency format '{dep}' should be accepted"


@given(
    invalid_dep=st.sampled_from(
        ["", "   ", "-invalid", "invalid-", "invalid package", "package@1.0.0"]
    )
)
def test_invalid_dependency_formats_rejected(invalid_dep):
    assert not is_valid_dependency_format(invalid_dep)


def test_pyproject_toml_has_required_sections():
    pyproject = load_pyproject_toml()

    assert "project" in pyproject
    for field in ["name", "version", "dependencies"]:
        assert field in pyproject["project"], f"[project] must have '{field}' field"

    assert "build-system" in pyproject
    assert "requires" in pyproject["build-system"]
    assert "build-backend" in pyproject["build-system"]


def test_dependencies_are_constrained():
    """Runtime dependencies carry a version constraint."""
    for dep in load_pyproject_toml()["project"]["dependencies"]:
        has_version = any(op in dep for op in [">=", "==", "~=", ">", "<", "!="])
        assert has_version, f"Dependency '{dependency_name(dep)}' should have a version constraint"
