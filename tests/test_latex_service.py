import os, sys, pathlib
import pytest
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from devsetup.services import latex_service


def test_assignment_template(tmp_path):
    tpl = latex_service.create_template("assignment", "R&D 100% done", str(tmp_path), "Ada", "CS_101")
    assert tpl.tex_path == str(tmp_path / "latex" / "assignment.tex")
    tex = pathlib.Path(tpl.tex_path).read_text(encoding="utf-8")
    assert r"R\&D 100\% done" in tex
    assert r"CS\_101" in tex
    assert "Ada" in tex
    script = pathlib.Path(tpl.compile_script)
    assert os.access(script, os.X_OK)
    body = script.read_text(encoding="utf-8")
    assert 'TEX_FILE="assignment.tex"' in body
    assert "bibtex" not in body


def test_research_paper_gets_bibliography_passes(tmp_path):
    tpl = latex_service.create_template("research_paper", "Graphs", str(tmp_path), "Ada")
    assert (tmp_path / "latex" / "references.bib").exists()
    body = pathlib.Path(tpl.compile_script).read_text(encoding="utf-8")
    assert 'bibtex "$BASE_NAME"' in body
    assert body.count('pdflatex "$TEX_FILE"') == 3


def test_presentation_is_beamer(tmp_path):
    text = latex_service.render("presentation", "Talk", "Ada", "Uni of Things")
    assert r"\documentclass{beamer}" in text
    assert "Uni of Things" in text


def test_unknown_kind(tmp_path):
    with pytest.raises(ValueError, match="E_TEMPLATE_KIND"):
        latex_service.create_template("poem", "x", str(tmp_path), "Ada")
    assert not (tmp_path / "latex").exists()
