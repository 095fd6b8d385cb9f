"""Keyword-scoring project-type classifier with explicit tech override."""

import re

from config.stacks import DEFAULT_PROJECT_TYPE

# Explicit technology mentions that force a project type.
# Checked BEFORE keyword scoring: if the user says "use vue", that wins.
EXPLICIT_TECH = [
    (r'\bnext\s*\.?\s*js\b', "nextjs"),
    (r'\bnextjs\b', "nextjs"),
    (r'\bapp\s+router\b', "nextjs"),
    (r'\bvue(?:\s*\.?\s*js)?\b', "vue"),
    (r'\bnuxt\b', "vue"),
    (r'\bvite\b', "react"),
    (r'\bcreate[- ]react[- ]app\b', "react"),
    (r'\bvanilla\s+(?:js|javascript)\b', "vanilla"),
    (r'\bplain\s+(?:html|javascript|js)\b', "vanilla"),
    (r'\bno\s+framework\b', "vanilla"),
]

KEYWORDS = {
    "nextjs": {
        "seo": 3, "server": 2, "api": 2, "route": 2, "ssr": 4, "blog": 2,
        "dashboard": 2, "auth": 2, "database": 2, "saas": 3, "fullstack": 4,
        "full-stack": 4, "backend": 2, "ecommerce": 2, "store": 1,
    },
    "react": {
        "react": 3, "spa": 4, "single-page": 4, "widget": 2, "component": 1,
        "client-side": 3, "game": 2, "canvas": 2, "offline": 2,
    },
    "vue": {
        "pinia": 4, "vuex": 4, "composition": 2, "directive": 2,
    },
    "vanilla": {
        "static": 3, "landing": 2, "html": 2, "css": 1, "portfolio": 2,
        "lightweight": 2, "minimal": 1, "one-page": 2,
    },
}


def classify_project(specification):
    """Score a specification against each project type and return the best match.

    Returns (project_type, scores_dict). scores_dict contains '_explicit'
    when an explicit technology mention decided the type.
    """
    text = specification.lower()

    for pattern, project_type in EXPLICIT_TECH:
        if re.search(pattern, text):
            scores = {pt: 0 for pt in KEYWORDS}
            scores[project_type] = 100
            scores["_explicit"] = project_type
            return project_type, scores

    scores = {}
    for project_type, kw_map in KEYWORDS.items():
        score = 0
        for keyword, weight in kw_map.items():
            if re.search(r'\b' + re.escape(keyword) + r'\b', text):
                score += weight
        scores[project_type] = score

    best = max(scores, key=scores.get)
    if scores[best] == 0:
        best = DEFAULT_PROJECT_TYPE
    return best, scores
