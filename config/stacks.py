"""Stack definitions mapping project type to core files, packages and scripts."""

STACKS = {
    "nextjs": {
        "name": "Next.js App Router",
        "framework": "nextjs",
        "core_files": [
            # (path, category, description, priority, dependencies)
            ("README.md", "documentation", "Project overview, setup and usage", 0, []),
            ("app/layout.tsx", "layout", "Root layout with html/body and global styles", 1, []),
            ("app/globals.css", "style", "Base global style sheet", 1, []),
            ("next.config.js", "config", "Next.js configuration", 1, []),
            ("package.json", "config", "Package manifest", 1, ["README.md"]),
        ],
        "core_packages": [
            ("next", "^14.0.0", "Application framework"),
            ("react", "^18.2.0", "UI library"),
            ("react-dom", "^18.2.0", "React DOM renderer"),
        ],
        "scripts": {
            "dev": "next dev",
            "build": "next build",
            "start": "next start",
            "lint": "next lint",
        },
    },
    "react": {
        "name": "React (Vite)",
        "framework": "react",
        "core_files": [
            ("README.md", "documentation", "Project overview, setup and usage", 0, []),
            ("index.html", "static", "HTML entry point", 1, []),
            ("src/index.css", "style", "Base global style sheet", 1, []),
            ("vite.config.js", "config", "Vite configuration", 1, []),
            ("package.json", "config", "Package manifest", 1, ["README.md"]),
        ],
        "core_packages": [
            ("react", "^18.2.0", "UI library"),
            ("react-dom", "^18.2.0", "React DOM renderer"),
            ("vite", "^5.0.0", "Dev server and bundler"),
        ],
        "scripts": {
            "dev": "vite",
            "build": "vite build",
            "preview": "vite preview",
        },
    },
    "vue": {
        "name": "Vue 3 (Vite)",
        "framework": "vue",
        "core_files": [
            ("README.md", "documentation", "Project overview, setup and usage", 0, []),
            ("index.html", "static", "HTML entry point", 1, []),
            ("src/style.css", "style", "Base global style sheet", 1, []),
            ("vite.config.js", "config", "Vite configuration", 1, []),
            ("package.json", "config", "Package manifest", 1, ["README.md"]),
        ],
        "core_packages": [
            ("vue", "^3.4.0", "UI framework"),
            ("vite", "^5.0.0", "Dev server and bundler"),
        ],
        "scripts": {
            "dev": "vite",
            "build": "vite build",
            "preview": "vite preview",
        },
    },
    "vanilla": {
        "name": "Vanilla JS",
        "framework": "vanilla",
        "core_files": [
            ("README.md", "documentation", "Project overview, setup and usage", 0, []),
            ("index.html", "static", "HTML entry point", 1, []),
            ("style.css", "style", "Base global style sheet", 1, []),
            ("package.json", "config", "Package manifest", 1, ["README.md"]),
        ],
        "core_packages": [],
        "scripts": {
            "start": "npx serve .",
        },
    },
}

TYPESCRIPT_PACKAGES = [
    ("typescript", "^5.0.0", "Type checking"),
    ("@types/react", "^18.2.0", "React type definitions"),
    ("@types/node", "^20.0.0", "Node type definitions"),
]

TAILWIND_PACKAGES = [
    ("tailwindcss", "^3.4.0", "Utility-first CSS"),
    ("autoprefixer", "^10.4.0", "Vendor prefixing for PostCSS"),
    ("postcss", "^8.4.0", "CSS processing"),
]

DEFAULT_PREFERENCES = {
    "styling": "tailwind",
    "state_management": "react-context",
    "ui_library": "",
    "typescript": True,
    "eslint": True,
    "prettier": False,
}

DEFAULT_PROJECT_TYPE = "nextjs"
