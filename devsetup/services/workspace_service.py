from __future__ import annotations
import json
import logging
import os
import shutil
import stat
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from devsetup.errors import CommandError
from devsetup.integrations.base import Runner
from devsetup.utils.time import stamp

log = logging.getLogger(__name__)

DATASETS = ("none", "mnist", "iris", "cifar10", "boston")

SUBDIRS = [
    "notebooks", "scripts", "models",
    "data/raw", "data/processed", "data/external",
    "results/figures", "results/tables", "docs",
]

REQUIREMENTS = """# Data processing
numpy
pandas
scikit-learn

# Visualization
matplotlib
seaborn
plotly

# Deep learning
tensorflow
torch
torchvision

# Jupyter
jupyterlab
notebook
ipywidgets
ipykernel

# ML libraries
xgboost
lightgbm

# Utilities
tqdm
pyyaml
"""

GITIGNORE = """venv/
__pycache__/
.ipynb_checkpoints/
data/raw/
data/processed/
models/*.h5
models/*.pt
*.pyc
.env
"""

README = """# {name}

## Project Overview
[Brief description of the project]

## Directory Structure
- `notebooks/`: Jupyter notebooks for exploration and analysis
- `scripts/`: Python scripts for data processing and modeling
- `models/`: Saved model files
- `data/`: Data files
  - `raw/`: Original, immutable data
  - `processed/`: Cleaned and processed data
  - `external/`: Data from external sources
- `results/`: Output from models
  - `figures/`: Generated figures and visualizations
  - `tables/`: Generated tables
- `docs/`: Documentation

## Setup
```bash
source venv/bin/activate
pip install -r requirements.txt
./run_jupyter.sh
```
"""

DATA_PROCESSING = '''#!/usr/bin/env python3
"""Data cleaning, preprocessing and feature engineering for {name}."""
import argparse
import logging
import os

import pandas as pd

logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
logger = logging.getLogger(__name__)


def load_data(filepath):
    logger.info("Loading data from %s", filepath)
    return pd.read_csv(filepath)


def preprocess_data(df):
    logger.info("Preprocessing data")
    return df.dropna()


def extract_features(df):
    logger.info("Extracting features")
    return df


def save_processed_data(df, output_path):
    logger.info("Saving processed data to %s", output_path)
    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    df.to_csv(output_path, index=False)


def main():
    parser = argparse.ArgumentParser(description="Process data for {name}")
    parser.add_argument("--input", required=True, help="Path to input data file")
    parser.add_argument("--output", required=True, help="Path to save processed data")
    args = parser.parse_args()

    df = extract_features(preprocess_data(load_data(args.input)))
    save_processed_data(df, args.output)
    logger.info("Data processing completed")


if __name__ == "__main__":
    main()
'''

DATASET_SCRIPTS = {
    "mnist": '''"""Download MNIST into data/raw."""
import os
import numpy as np
from tensorflow.keras.datasets import mnist

out = os.path.join(os.path.dirname(__file__), "..", "data", "raw")
os.makedirs(out, exist_ok=True)
(X_train, y_train), (X_test, y_test) = mnist.load_data()
np.savez_compressed(os.path.join(out, "mnist.npz"), X_train=X_train, y_train=y_train, X_test=X_test, y_test=y_test)
print("MNIST saved to data/raw/mnist.npz")
''',
    "cifar10": '''"""Download CIFAR-10 into data/raw."""
import os
import numpy as np
from tensorflow.keras.datasets import cifar10

out = os.path.join(os.path.dirname(__file__), "..", "data", "raw")
os.makedirs(out, exist_ok=True)
(X_train, y_train), (X_test, y_test) = cifar10.load_data()
np.savez_compressed(os.path.join(out, "cifar10.npz"), X_train=X_train, y_train=y_train, X_test=X_test, y_test=y_test)
print("CIFAR-10 saved to data/raw/cifar10.npz")
''',
    "iris": '''"""Save the Iris dataset into data/raw."""
import os
import pandas as pd
from sklearn.datasets import load_iris

out = os.path.join(os.path.dirname(__file__), "..", "data", "raw")
os.makedirs(out, exist_ok=True)
iris = load_iris()
df = pd.DataFrame(data=iris.data, columns=iris.feature_names)
df["target"] = iris.target
df.to_csv(os.path.join(out, "iris.csv"), index=False)
print("Iris dataset saved to data/raw/iris.csv")
''',
    "boston": '''"""Download the Boston housing dataset from OpenML into data/raw."""
import os
from sklearn.datasets import fetch_openml

out = os.path.join(os.path.dirname(__file__), "..", "data", "raw")
os.makedirs(out, exist_ok=True)
boston = fetch_openml(name="boston", version=1, as_frame=True)
boston.frame.to_csv(os.path.join(out, "boston.csv"), index=False)
print("Boston housing dataset saved to data/raw/boston.csv")
''',
}

RUN_JUPYTER = """#!/bin/bash
cd "$(dirname "${BASH_SOURCE[0]}")"
source venv/bin/activate
jupyter lab
"""


def _cell(kind: str, source: str) -> dict:
    cell = {"cell_type": kind, "metadata": {}, "source": source.splitlines(keepends=True)}
    if kind == "code":
        cell["execution_count"] = None
        cell["outputs"] = []
    return cell

def notebook(cells: list[dict], kernel: str) -> dict:
    return {
        "cells": cells,
        "metadata": {
            "kernelspec": {"display_name": f"Python ({kernel})", "language": "python", "name": kernel},
            "language_info": {"name": "python"},
        },
        "nbformat": 4,
        "nbformat_minor": 5,
    }

def exploration_notebook(name: str) -> dict:
    return notebook([
        _cell("markdown", f"# Data Exploration for {name}\n\nInitial exploration of the dataset."),
        _cell("code", "import numpy as np\nimport pandas as pd\nimport matplotlib.pyplot as plt\nimport seaborn as sns\n\n"
                      "%matplotlib inline\nsns.set_style('whitegrid')"),
        _cell("markdown", "## Load Data"),
        _cell("code", "# df = pd.read_csv('../data/raw/your_data.csv')\n# df.head()"),
        _cell("markdown", "## Data Overview"),
        _cell("code", "# df.info()\n# df.describe()"),
        _cell("markdown", "## Visualizations"),
        _cell("code", "# sns.pairplot(df)\n# plt.show()"),
    ], name)

def model_notebook(name: str) -> dict:
    return notebook([
        _cell("markdown", f"# Model Development for {name}"),
        _cell("code", "import numpy as np\nimport pandas as pd\nfrom sklearn.model_selection import train_test_split\n"
                      "from sklearn.metrics import accuracy_score, classification_report"),
        _cell("markdown", "## Prepare Data"),
        _cell("code", "# X_train, X_test, y_train, y_test = train_test_split(X, y, test_size=0.2, random_state=42)"),
        _cell("markdown", "## Train Model"),
        _cell("code", "# model.fit(X_train, y_train)"),
        _cell("markdown", "## Evaluate"),
        _cell("code", "# print(classification_report(y_test, model.predict(X_test)))"),
    ], name)


@dataclass
class WorkspaceReport:
    path: str
    files: list[str] = field(default_factory=list)
    backup: Optional[str] = None
    venv: bool = False
    warnings: list[str] = field(default_factory=list)


def _write(path: str, content: str, executable: bool = False) -> str:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    if executable:
        os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class WorkspaceService:
    def __init__(self, projects_dir: str, runner: Runner, python: str = "python3"):
        self.projects_dir = projects_dir
        self.runner = runner
        self.python = python

    def _try(self, report: WorkspaceReport, what: str, cmd: list[str], cwd: str) -> bool:
        try:
            self.runner.run(cmd, cwd=cwd)
            return True
        except CommandError as e:
            report.warnings.append(f"{what} failed: {e}")
            log.warning("%s failed: %s", what, e)
            return False

    def create_project(self, name: str, dataset: str = "none", overwrite: bool = False,
                       create_venv: bool = True, now: Optional[datetime] = None) -> WorkspaceReport:
        name = (name or "").strip()
        if not name:
            raise ValueError("E_NAME_EMPTY")
        if dataset not in DATASETS:
            raise ValueError(f"E_DATASET_INVALID: {dataset}")

        project = os.path.join(self.projects_dir, name)
        report = WorkspaceReport(path=project)
        if os.path.exists(project):
            if not overwrite:
                raise ValueError(f"E_PROJECT_EXISTS: {project}")
            report.backup = f"{project}.backup.{stamp(now)}"
            shutil.move(project, report.backup)
            log.info("Existing project moved to %s", report.backup)

        for sub in SUBDIRS:
            os.makedirs(os.path.join(project, sub), exist_ok=True)

        files = report.files
        files.append(_write(os.path.join(project, "README.md"), README.format(name=name)))
        files.append(_write(os.path.join(project, "requirements.txt"), REQUIREMENTS))
        files.append(_write(os.path.join(project, ".gitignore"), GITIGNORE))
        for fname, nb in (("01_data_exploration.ipynb", exploration_notebook(name)),
                          ("02_model_development.ipynb", model_notebook(name))):
            files.append(_write(os.path.join(project, "notebooks", fname), json.dumps(nb, indent=1) + "\n"))
        files.append(_write(os.path.join(project, "scripts", "data_processing.py"),
                            DATA_PROCESSING.replace("{name}", name), executable=True))
        dataset_script = None
        if dataset != "none":
            dataset_script = _write(os.path.join(project, "scripts", f"download_{dataset}.py"), DATASET_SCRIPTS[dataset])
            files.append(dataset_script)
        files.append(_write(os.path.join(project, "run_jupyter.sh"), RUN_JUPYTER, executable=True))

        if self._try(report, "git init", ["git", "init"], project):
            self._try(report, "git add", ["git", "add", "-A"], project)
            self._try(report, "git commit", ["git", "commit", "-m", "Initial project setup"], project)

        if create_venv:
            report.venv = self._setup_venv(report, project, name, dataset_script)

        log.info("AI project created: %s", project)
        return report

    def _setup_venv(self, report: WorkspaceReport, project: str, name: str, dataset_script: Optional[str]) -> bool:
        if not self._try(report, "venv creation", [self.python, "-m", "venv", "venv"], project):
            return False
        py = os.path.join(project, "venv", "bin", "python")
        self._try(report, "pip upgrade", [py, "-m", "pip", "install", "--upgrade", "pip"], project)
        self._try(report, "requirements install", [py, "-m", "pip", "install", "-r", "requirements.txt"], project)
        self._try(report, "Jupyter kernel registration",
                  [py, "-m", "ipykernel", "install", "--user", f"--name={name}", f"--display-name=Python ({name})"], project)
        if dataset_script:
            self._try(report, "dataset download", [py, dataset_script], project)
        return True
