from __future__ import annotations
import logging
import os
import stat
from dataclasses import dataclass
from string import Template

log = logging.getLogger(__name__)

KINDS = ("assignment", "research_paper", "lab_report", "essay", "presentation")
STANDALONE_DIR = "LaTeX_Templates"

_PREAMBLE = r"""\documentclass[12pt,letterpaper]{article}
\usepackage[utf8]{inputenc}
\usepackage[margin=1in]{geometry}
$packages
\usepackage{graphicx}
\usepackage{hyperref}
\usepackage{fancyhdr}

\pagestyle{fancy}
\fancyhf{}
\lhead{$lhead}
\rhead{$author}
\cfoot{\thepage}

\title{$title}
\author{$author}
\date{\today}

\begin{document}

\maketitle
"""

_BODIES = {
    "assignment": r"""
\section*{Problem 1}
Your solution here.

\section*{Problem 2}
Your solution here.

\section*{Problem 3}
Your solution here.

\end{document}
""",
    "research_paper": r"""
\begin{abstract}
A brief summary of the paper's purpose, methods, findings and conclusions.
\end{abstract}

\section{Introduction}
Your introduction here.

\section{Background}
Background information and literature review.

\section{Methodology}
Research methodology and approach.

\section{Results}
Research findings and results.

\section{Discussion}
Analysis and discussion of results.

\section{Conclusion}
Summary and conclusions.

\bibliographystyle{plainnat}
\bibliography{references}

\end{document}
""",
    "lab_report": r"""
\section{Objective}
State the objective(s) of the lab experiment.

\section{Introduction}
Brief introduction to the lab experiment and relevant theory.

\section{Materials and Methods}
List of materials used and detailed methodology.

\section{Results}
Experimental results, data tables, and graphs.

\section{Analysis}
Analysis of experimental results.

\section{Discussion}
Discussion of findings, sources of error, and comparison with expectations.

\section{Conclusion}
Summary of findings and conclusions.

\section{References}
List of references used.

\end{document}
""",
    "essay": r"""
\section{Introduction}
Your introduction here.

\section{Main Body}
Your main body text here. You can divide this into multiple sections as needed.

\subsection{Subtopic 1}
Discussion of first subtopic.

\subsection{Subtopic 2}
Discussion of second subtopic.

\section{Conclusion}
Your conclusion here.

\section{References}
Your references here.

\end{document}
""",
}

_EXTRA_PACKAGES = {
    "assignment": r"\usepackage{amsmath,amssymb,amsfonts}" "\n" r"\usepackage{enumitem}",
    "research_paper": r"\usepackage{amsmath,amssymb,amsfonts}" "\n" r"\usepackage{natbib}",
    "lab_report": r"\usepackage{amsmath,amssymb,amsfonts}" "\n" r"\usepackage{siunitx}",
    "essay": "",
}

_PRESENTATION = r"""\documentclass{beamer}
\usetheme{Madrid}
\usecolortheme{default}
\usepackage[utf8]{inputenc}
\usepackage{graphicx}
\usepackage{hyperref}

\title{$title}
\author{$author}
\institute{$institute}
\date{\today}

\begin{document}

\frame{\titlepage}

\begin{frame}
\frametitle{Outline}
\tableofcontents
\end{frame}

\section{Introduction}
\begin{frame}
\frametitle{Introduction}
\begin{itemize}
    \item First point
    \item Second point
\end{itemize}
\end{frame}

\section{Main Content}
\begin{frame}
\frametitle{Main Content}
Content goes here.
\end{frame}

\section{Conclusion}
\begin{frame}
\frametitle{Conclusion}
Questions?
\end{frame}

\end{document}
"""

_REFERENCES = """@book{example,
  title={Example Book Title},
  author={Author, A.},
  year={2024},
  publisher={Publisher Name}
}
"""

_COMPILE = """#!/bin/bash
SCRIPT_DIR="$$(cd "$$(dirname "$${BASH_SOURCE[0]}")" && pwd)"
cd "$$SCRIPT_DIR"

TEX_FILE="$tex_file"
BASE_NAME="$${TEX_FILE%.tex}"

pdflatex "$$TEX_FILE"
$bib
if command -v xdg-open &> /dev/null; then
    xdg-open "$$BASE_NAME.pdf"
elif command -v open &> /dev/null; then
    open "$$BASE_NAME.pdf"
elif command -v cmd.exe &> /dev/null; then
    cmd.exe /c start "$$BASE_NAME.pdf"
else
    echo "PDF created: $$BASE_NAME.pdf"
fi
"""

_BIB_PASSES = """bibtex "$BASE_NAME"
pdflatex "$TEX_FILE"
pdflatex "$TEX_FILE"
"""

_LATEX_SPECIALS = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}


def escape(text: str) -> str:
    return "".join(_LATEX_SPECIALS.get(ch, ch) for ch in text)


@dataclass
class LatexTemplate:
    kind: str
    tex_path: str
    compile_script: str


def render(kind: str, title: str, author: str, course: str = "") -> str:
    if kind not in KINDS:
        raise ValueError(f"E_TEMPLATE_KIND: {kind}")
    values = {"title": escape(title), "author": escape(author)}
    if kind == "presentation":
        return Template(_PRESENTATION).substitute(values, institute=escape(course) or "Your University")
    lhead = {
        "assignment": escape(course),
        "research_paper": "Research Paper",
        "lab_report": "Lab Report",
        "essay": "Essay",
    }[kind]
    if kind == "lab_report":
        values["title"] += r"\\Lab Report"
    head = Template(_PREAMBLE).substitute(values, packages=_EXTRA_PACKAGES[kind], lhead=lhead)
    return head + _BODIES[kind]


def create_template(kind: str, title: str, target_dir: str, author: str, course: str = "") -> LatexTemplate:
    """Write ``<target_dir>/latex/<kind>.tex`` and a ``compile.sh`` next to it."""
    content = render(kind, title, author, course)
    latex_dir = os.path.join(target_dir, "latex")
    os.makedirs(latex_dir, exist_ok=True)

    tex_name = f"{kind}.tex"
    tex_path = os.path.join(latex_dir, tex_name)
    with open(tex_path, "w", encoding="utf-8") as f:
        f.write(content)

    if kind == "research_paper":
        with open(os.path.join(latex_dir, "references.bib"), "w", encoding="utf-8") as f:
            f.write(_REFERENCES)

    script = os.path.join(latex_dir, "compile.sh")
    with open(script, "w", encoding="utf-8") as f:
        f.write(Template(_COMPILE).substitute(
            tex_file=tex_name,
            bib=_BIB_PASSES if kind == "research_paper" else "",
        ))
    os.chmod(script, os.stat(script).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    log.info("LaTeX template %s written to %s", kind, tex_path)
    return LatexTemplate(kind=kind, tex_path=tex_path, compile_script=script)
