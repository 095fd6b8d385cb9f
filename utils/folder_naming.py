"""Folder naming utilities: slug generation, project-type dirs, dedup."""

import os
import re

BASE_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "generated")

PROJECT_TYPE_DIRS = {
    "nextjs": "nextjs_apps",
    "react": "react_apps",
    "vue": "vue_apps",
    "vanilla": "static_sites",
}


def slugify(text):
    """Convert text to a filesystem-safe slug."""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_-]+", "_", text)
    return text.strip("_")


def extract_project_name(specification):
    """Pull a short project name from the specification text."""
    filler = {
        "build", "me", "a", "an", "the", "create", "make", "generate",
        "write", "for", "to", "with", "using", "that", "and", "app",
        "application", "website", "site", "web", "please", "can",
        "you", "i", "want", "need", "some", "new", "simple", "nextjs",
        "next", "js", "react", "vue",
    }
    words = re.sub(r"[^\w\s]", " ", specification.lower()).split()
    meaningful = [w for w in words if w not in filler]
    name = "_".join(meaningful[:3]) if meaningful else "project"
    return slugify(name) or "project"


MAX_DEDUP = 1000


def _check_containment(path, base_dir):
    """Verify the resolved path stays within base_dir."""
    resolved = os.path.realpath(path)
    if not resolved.startswith(os.path.realpath(base_dir) + os.sep):
        raise ValueError(f"Generated output path escapes base directory: {path}")
    return resolved


def get_output_dir(project_type, specification, base_dir=None):
    """Return a deduplicated output directory for the given project type and specification."""
    base_dir = base_dir or BASE_DIR
    type_dir = PROJECT_TYPE_DIRS.get(project_type, "apps")
    project_name = extract_project_name(specification)
    base = os.path.join(base_dir, type_dir, project_name)
    _check_containment(base, base_dir)

    if not os.path.exists(base):
        return base

    for counter in range(2, MAX_DEDUP + 2):
        candidate = f"{base}_{counter}"
        if not os.path.exists(candidate):
            return candidate

    raise RuntimeError(f"Too many duplicate projects (>{MAX_DEDUP}) for: {project_name}")


def write_files(output_dir, files):
    """Write GeneratedFile records under output_dir. Returns the written paths."""
    os.makedirs(output_dir, exist_ok=True)
    root = os.path.realpath(output_dir)
    written = []
    for f in files:
        resolved = os.path.realpath(os.path.join(output_dir, f.path))
        if not resolved.startswith(root + os.sep):
            raise ValueError(f"Path escapes output directory: {f.path}")
        os.makedirs(os.path.dirname(resolved), exist_ok=True)
        with open(resolved, "w") as fp:
            fp.write(f.content)
        written.append(f.path)
    return written
