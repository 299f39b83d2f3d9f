"""
Test suite to verify package installation and importability.
"""

import importlib
import logging
import sys
from pathlib import Path

import pytest


def test_python_environment():
    """Test basic Python environment information."""
    assert sys.version_info >= (
        3,
        9,
    ), f"Python version {sys.version} is too old. Need 3.9+"
    assert sys.executable is not None, "Python executable not found"


def test_package_installation():
    """Test if the package is properly installed."""
    try:
        import music_ngrams

        assert music_ngrams is not None, "Package import returned None"
        assert hasattr(music_ngrams, "__file__"), "Package has no __file__ attribute"
        assert Path(
            music_ngrams.__file__
        ).parent.exists(), "Package directory does not exist"
    except ImportError as e:
        pytest.fail(f"Package import failed: {e}")


def test_core_imports():
    """Test if core modules can be imported."""
    core_modules = [
        "music_ngrams.aggregate",
        "music_ngrams.feature_decorators",
        "music_ngrams.features",
        "music_ngrams.generator",
        "music_ngrams.import_mid",
        "music_ngrams.moments",
        "music_ngrams.ngram",
        "music_ngrams.representations",
        "music_ngrams.stats",
    ]

    failed_imports = []
    for module_name in core_modules:
        try:
            module = importlib.import_module(module_name)
            assert module is not None, f"Module {module_name} imported but is None"
        except ImportError as e:
            failed_imports.append(f"{module_name}: {e}")

    if failed_imports:
        pytest.fail(f"Failed to import modules: {', '.join(failed_imports)}")


def test_main_functions():
    """Test if main functions can be imported from the package."""
    from music_ngrams import Config, FeatureThresholds, get_all_features

    config = Config(
        filtering_threshold=0.05,
        thresholds=FeatureThresholds(common_rhythmic_threshold=0.1),
    )

    assert config.thresholds.common_rhythmic_threshold == 0.1
    assert config.thresholds.rare_vertical_threshold == 0.005
    assert callable(get_all_features), "get_all_features should be callable"


def test_logger_setup():
    """Test that the package logger is configured once."""
    from music_ngrams.features import _setup_logger

    logger = _setup_logger(logging.DEBUG)
    handlers = len(logger.handlers)
    assert logger.name == "music_ngrams"
    assert logger.level == logging.DEBUG
    assert _setup_logger(logging.INFO).handlers == logger.handlers
    assert len(logger.handlers) == handlers


def test_dependencies():
    """Test if key dependencies are available."""
    dependencies = [
        "numpy",
        "pandas",
        "scipy",
        "mido",
        "natsort",
        "tqdm",
    ]

    failed_deps = []
    for dep in dependencies:
        try:
            module = importlib.import_module(dep)
            assert module is not None, f"Module {dep} imported but is None"
        except ImportError as e:
            failed_deps.append(f"{dep}: {e}")

    if failed_deps:
        pytest.fail(f"Failed to import dependencies: {', '.join(failed_deps)}")


def test_import_leaves_warning_filters_alone():
    """Test that importing the package does not install warning filters."""
    import warnings

    import music_ngrams.features
    import music_ngrams.import_mid

    for module in (music_ngrams.features, music_ngrams.import_mid):
        assert not hasattr(module, "warnings"), f"{module.__name__} imports warnings"
    assert not any(
        "pkg_resources" in str(getattr(module, "pattern", module))
        for _, _, _, module, _ in warnings.filters
    ), "A pkg_resources warning filter is installed"
