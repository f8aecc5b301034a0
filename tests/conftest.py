"""Pytest configuration and shared fixtures."""

import os

# Headless SDL for surfaces and fonts
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import numpy as np
import pygame
import pytest

TEST_SR = 22050
N_BINS = 128


@pytest.fixture(scope="session", autouse=True)
def pygame_fonts():
    pygame.font.init()
    yield
    pygame.font.quit()


@pytest.fixture
def surface() -> pygame.Surface:
    """Small transparent RGBA canvas."""
    return pygame.Surface((160, 120), pygame.SRCALPHA)


@pytest.fixture
def silence() -> np.ndarray:
    return np.zeros(N_BINS, dtype=np.uint8)


@pytest.fixture
def kick_frame() -> np.ndarray:
    """Kick band saturated, everything else silent."""
    data = np.zeros(N_BINS, dtype=np.uint8)
    data[:6] = 255
    return data


@pytest.fixture
def loud_frame() -> np.ndarray:
    return np.full(N_BINS, 200, dtype=np.uint8)


@pytest.fixture
def sine_wav(tmp_path):
    """One second of a quiet 440Hz sine written to a WAV file."""
    import soundfile as sf

    t = np.linspace(0, 1.0, TEST_SR, endpoint=False)
    y = (0.01 * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32)
    path = tmp_path / "sine.wav"
    sf.write(path, y, TEST_SR)
    return path
