"""Config strategy: configuration, style and static files.

package.json and tsconfig.json at the project root are synthesized from
the plan instead of asking the model for them.
"""

import json

from agents.base import BaseStrategy
from config.stacks import STACKS, DEFAULT_PROJECT_TYPE
from core.state import GeneratedFile
from utils.folder_naming import slugify

_NEXT_TSCONFIG = {
    "compilerOptions": {
        "target": "es5",
        "lib": ["dom", "dom.iterable", "esnext"],
        "allowJs": True,
        "skipLibCheck": True,
        "strict": True,
        "noEmit": True,
        "esModuleInterop": True,
        "module": "esnext",
        "moduleResolution": "bundler",
        "resolveJsonModule": True,
        "isolatedModules": True,
        "jsx": "preserve",
        "incremental": True,
        "plugins": [{"name": "next"}],
        "paths": {"@/*": ["./*"]},
    },
    "include": ["next-env.d.ts", "**/*.ts", "**/*.tsx", ".next/types/**/*.ts"],
    "exclude": ["node_modules"],
}

_VITE_TSCONFIG = {
    "compilerOptions": {
        "target": "ES2020",
        "useDefineForClassFields": True,
        "lib": ["ES2020", "DOM", "DOM.Iterable"],
        "module": "ESNext",
        "skipLibCheck": True,
        "moduleResolution": "bundler",
        "resolveJsonModule": True,
        "isolatedModules": True,
        "noEmit": True,
        "jsx": "react-jsx",
        "strict": True,
    },
    "include": ["src"],
}

_SECTIONS = {
    "dependency": "dependencies",
    "devDependency": "devDependencies",
    "peerDependency": "peerDependencies",
}


def build_package_json(context):
    stack = STACKS.get(context.project_type, STACKS[DEFAULT_PROJECT_TYPE])
    manifest = {
        "name": slugify(context.project_name).replace("_", "-") or "generated-app",
        "version": "0.1.0",
        "private": True,
        "scripts": dict(stack["scripts"]),
    }
    if context.project_type in ("react", "vue", "vanilla"):
        manifest["type"] = "module"
    for dep in context.dependencies:
        section = manifest.setdefault(_SECTIONS.get(dep.type, "dependencies"), {})
        section[dep.package] = dep.version
    for key in ("dependencies", "devDependencies", "peerDependencies"):
        if key in manifest:
            manifest[key] = dict(sorted(manifest[key].items()))
    return json.dumps(manifest, indent=2) + "\n"


def build_tsconfig(context):
    config = _NEXT_TSCONFIG if context.project_type == "nextjs" else _VITE_TSCONFIG
    return json.dumps(config, indent=2) + "\n"


_SYNTHESIZED = {
    "package.json": build_package_json,
    "tsconfig.json": build_tsconfig,
}


class ConfigStrategy(BaseStrategy):
    name = "config"
    prompt_name = "config"

    def synthesize(self, task, related, context):
        builder = _SYNTHESIZED.get(task.path)
        if builder is None:
            return None
        content = builder(context)
        return GeneratedFile(
            path=task.path,
            content=content,
            category=task.category,
            imports=(),
            exports=(),
            metadata={"synthesized": True},
        )

    def instructions(self, task, context):
        lines = []
        styling = context.architecture.get("styling", "")
        if "tailwind" in str(styling).lower():
            lines.append("The project uses Tailwind CSS.")
        if task.path.endswith(".json"):
            lines.append("Output strict JSON in \"content\".")
        return lines
