"""Tests for manager.classifier."""

from manager.classifier import classify_project


def test_nextjs_classification():
    project_type, scores = classify_project("a SaaS dashboard with auth, a database and SEO")
    assert project_type == "nextjs"
    assert scores["nextjs"] > scores["react"]


def test_react_classification():
    project_type, _ = classify_project("a client-side SPA game with a canvas")
    assert project_type == "react"


def test_vanilla_classification():
    project_type, _ = classify_project("a static portfolio landing page in html and css")
    assert project_type == "vanilla"


def test_vue_classification():
    project_type, _ = classify_project("an app using pinia for state")
    assert project_type == "vue"


def test_default_to_nextjs():
    project_type, scores = classify_project("do something completely unrelated")
    assert project_type == "nextjs"
    assert "_explicit" not in scores


def test_scores_are_dict():
    _, scores = classify_project("hello world")
    assert set(scores) == {"nextjs", "react", "vue", "vanilla"}


# --- Explicit tech override tests ---

def test_explicit_vue_wins():
    project_type, scores = classify_project("a SaaS dashboard with auth, built with Vue.js")
    assert project_type == "vue"
    assert scores["_explicit"] == "vue"


def test_explicit_next_js_spacing():
    project_type, _ = classify_project("static landing page, use Next JS")
    assert project_type == "nextjs"


def test_explicit_vanilla():
    project_type, _ = classify_project("a React-like widget but with no framework")
    assert project_type == "vanilla"


def test_vite_means_react():
    project_type, _ = classify_project("a portfolio built with vite")
    assert project_type == "react"
