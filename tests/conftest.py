import logging

import numpy as np
import pytest

from heightfield import FbmSampler, HeightfieldService, NoiseField


@pytest.fixture
def noise_field():
    return NoiseField(1337)


@pytest.fixture
def sampler(noise_field):
    return FbmSampler(noise_field)


@pytest.fixture
def service():
    return HeightfieldService(1337, logger=logging.getLogger("test-heightfield"))


class FlatSampler:
    """Sampler stub that leaves the plane undisplaced."""
    def sample_array(self, xs, ys, parallel=False):
        return np.zeros(np.shape(xs))


@pytest.fixture
def flat_sampler():
    return FlatSampler()
