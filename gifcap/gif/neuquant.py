"""NeuQuant neural-net color quantizer.

Anthony Dekker's Kohonen-style network (1994): 256 color neurons are trained by
presenting sampled pixels. Each presentation moves the winning neuron, and a
shrinking neighbourhood around it, toward the pixel. Learning rate and radius
decay over a fixed number of cycles. After training the network is sorted on
the green channel and indexed so lookups only scan neurons close in green.

Pixels are sampled by stepping through the image with a prime stride, so the
result depends only on the pixel data and the sample interval.

All network arithmetic is integer fixed point: colors carry ``NET_BIAS_SHIFT``
extra bits while learning, frequencies and biases ``INT_BIAS_SHIFT`` bits.
Divisions use floor division, so negative deltas round toward minus infinity
rather than toward zero.
"""

from __future__ import annotations

from typing import List, Tuple

import numpy as np

from gifcap.errors import InvalidArgumentError

NETSIZE = 256
MAX_NET_POS = NETSIZE - 1

# Strides for sampling; an image length divisible by all four is vanishingly rare.
PRIME1 = 499
PRIME2 = 491
PRIME3 = 487
PRIME4 = 503
MIN_PICTURE_BYTES = 3 * PRIME4

N_CYCLES = 100

NET_BIAS_SHIFT = 4
INT_BIAS_SHIFT = 16
INT_BIAS = 1 << INT_BIAS_SHIFT
GAMMA_SHIFT = 10
BETA_SHIFT = 10
BETA = INT_BIAS >> BETA_SHIFT
BETA_GAMMA = INT_BIAS << (GAMMA_SHIFT - BETA_SHIFT)

INIT_RAD = NETSIZE >> 3
RADIUS_BIAS_SHIFT = 6
RADIUS_BIAS = 1 << RADIUS_BIAS_SHIFT
INIT_RADIUS = INIT_RAD * RADIUS_BIAS
RADIUS_DEC = 30

ALPHA_BIAS_SHIFT = 10
INIT_ALPHA = 1 << ALPHA_BIAS_SHIFT
RAD_BIAS_SHIFT = 8
RAD_BIAS = 1 << RAD_BIAS_SHIFT
ALPHA_RAD_BIAS_SHIFT = ALPHA_BIAS_SHIFT + RAD_BIAS_SHIFT
ALPHA_RAD_BIAS = 1 << ALPHA_RAD_BIAS_SHIFT

MIN_SAMPLE_INTERVAL = 1
MAX_SAMPLE_INTERVAL = 100


class NeuQuant:
    """Learns a 256 color palette from a flat RGB byte buffer.

    ``sample_interval`` 1 presents every pixel; larger values present every
    n-th pixel, trading palette quality for speed.
    """

    def __init__(self, pixels, sample_interval: int = 10) -> None:
        picture = bytes(pixels)
        if not picture or len(picture) % 3:
            raise InvalidArgumentError("NeuQuant needs a non-empty RGB buffer (length divisible by 3)")

        self._picture = picture
        self._length = len(picture)
        self._sample = min(MAX_SAMPLE_INTERVAL, max(MIN_SAMPLE_INTERVAL, int(sample_interval)))

        start = (np.arange(NETSIZE, dtype=np.int64) << (NET_BIAS_SHIFT + 8)) // NETSIZE
        self._network = np.repeat(start[:, None], 3, axis=1)
        self._freq = np.full(NETSIZE, INT_BIAS // NETSIZE, dtype=np.int64)
        self._bias = np.zeros(NETSIZE, dtype=np.int64)
        self._radpower = np.zeros(INIT_RAD, dtype=np.int64)

        self._sorted: List[Tuple[int, int, int, int]] = []
        self._netindex = [0] * 256
        self._palette: np.ndarray | None = None

    @property
    def sample_interval(self) -> int:
        return self._sample

    # ------------------------------------------------------------------ public API

    def process(self) -> np.ndarray:
        """Train the network and return the ``(256, 3)`` uint8 palette."""
        self._learn()
        self._unbias()
        self._build_index()
        return self._palette

    def map(self, r: int, g: int, b: int) -> int:
        """Index of the palette entry nearest to ``(r, g, b)`` (L1 distance)."""
        if self._palette is None:
            raise InvalidArgumentError("NeuQuant.map() called before process()")

        network = self._sorted
        best_d = 1000  # above the largest possible L1 distance (765)
        best = -1
        i = self._netindex[g]
        j = i - 1

        while i < NETSIZE or j >= 0:
            if i < NETSIZE:
                pr, pg, pb, idx = network[i]
                dist = pg - g
                if dist >= best_d:
                    i = NETSIZE
                else:
                    i += 1
                    if dist < 0:
                        dist = -dist
                    dist += abs(pr - r)
                    if dist < best_d:
                        dist += abs(pb - b)
                        if dist < best_d:
                            best_d = dist
                            best = idx
            if j >= 0:
                pr, pg, pb, idx = network[j]
                dist = g - pg
                if dist >= best_d:
                    j = -1
                else:
                    j -= 1
                    if dist < 0:
                        dist = -dist
                    dist += abs(pr - r)
                    if dist < best_d:
                        dist += abs(pb - b)
                        if dist < best_d:
                            best_d = dist
                            best = idx
        return best

    # ------------------------------------------------------------------ learning

    def _learn(self) -> None:
        length = self._length
        sample = self._sample
        if length < MIN_PICTURE_BYTES:
            sample = 1

        alphadec = 30 + (sample - 1) // 3
        samplepixels = length // (3 * sample)
        delta = max(1, samplepixels // N_CYCLES)
        alpha = INIT_ALPHA
        radius = INIT_RADIUS
        rad = self._radius_from(radius)
        self._update_radpower(alpha, rad)

        if length < MIN_PICTURE_BYTES:
            step = 3
        elif length % PRIME1:
            step = 3 * PRIME1
        elif length % PRIME2:
            step = 3 * PRIME2
        elif length % PRIME3:
            step = 3 * PRIME3
        else:
            step = 3 * PRIME4

        picture = self._picture
        pix = 0
        for i in range(1, samplepixels + 1):
            color = np.array(
                (picture[pix] << NET_BIAS_SHIFT, picture[pix + 1] << NET_BIAS_SHIFT, picture[pix + 2] << NET_BIAS_SHIFT),
                dtype=np.int64,
            )
            winner = self._contest(color)
            self._alter_single(alpha, winner, color)
            if rad:
                self._alter_neighbours(rad, winner, color)

            pix += step
            if pix >= length:
                pix -= length

            if i % delta == 0:
                alpha -= alpha // alphadec
                radius -= radius // RADIUS_DEC
                rad = self._radius_from(radius)
                self._update_radpower(alpha, rad)

    @staticmethod
    def _radius_from(radius: int) -> int:
        rad = radius >> RADIUS_BIAS_SHIFT
        return 0 if rad <= 1 else rad

    def _update_radpower(self, alpha: int, rad: int) -> None:
        if not rad:
            return
        offsets = np.arange(rad, dtype=np.int64)
        rad2 = rad * rad
        self._radpower[:rad] = alpha * (((rad2 - offsets * offsets) * RAD_BIAS) // rad2)

    def _contest(self, color: np.ndarray) -> int:
        """Pick the winning neuron, updating frequencies and biases.

        The plain nearest neuron gains frequency; the winner returned is the
        one with the best bias-adjusted distance, which keeps rarely chosen
        neurons in play.
        """
        dist = np.abs(self._network - color).sum(axis=1)
        best_pos = int(np.argmin(dist))
        bias_dist = dist - (self._bias >> (INT_BIAS_SHIFT - NET_BIAS_SHIFT))
        best_bias_pos = int(np.argmin(bias_dist))

        beta_freq = self._freq >> BETA_SHIFT
        self._freq -= beta_freq
        self._bias += beta_freq << GAMMA_SHIFT
        self._freq[best_pos] += BETA
        self._bias[best_pos] -= BETA_GAMMA
        return best_bias_pos

    def _alter_single(self, alpha: int, index: int, color: np.ndarray) -> None:
        neuron = self._network[index]
        neuron -= (alpha * (neuron - color)) // INIT_ALPHA

    def _alter_neighbours(self, rad: int, index: int, color: np.ndarray) -> None:
        lo = max(index - rad, -1)
        hi = min(index + rad, NETSIZE)
        network = self._network

        above = hi - index - 1
        if above > 0:
            weights = self._radpower[1:above + 1, None]
            rows = network[index + 1:hi]
            rows -= (weights * (rows - color)) // ALPHA_RAD_BIAS

        below = index - 1 - lo
        if below > 0:
            weights = self._radpower[1:below + 1, None]
            rows = np.arange(index - 1, lo, -1)
            network[rows] -= (weights * (network[rows] - color)) // ALPHA_RAD_BIAS

    # ------------------------------------------------------------------ indexing

    def _unbias(self) -> None:
        colors = np.clip(self._network >> NET_BIAS_SHIFT, 0, 255)
        self._palette = colors.astype(np.uint8)

    def _build_index(self) -> None:
        """Sort neurons on green and record where each green value starts."""
        colors = self._palette.astype(np.int64)
        order = np.argsort(colors[:, 1], kind="stable")
        self._sorted = [
            (int(colors[k, 0]), int(colors[k, 1]), int(colors[k, 2]), int(k)) for k in order
        ]

        netindex = self._netindex
        previous = 0
        start = 0
        for i, (_, green, _, _) in enumerate(self._sorted):
            if green != previous:
                netindex[previous] = (start + i) >> 1
                for j in range(previous + 1, green):
                    netindex[j] = i
                previous = green
                start = i
        netindex[previous] = (start + MAX_NET_POS) >> 1
        for j in range(previous + 1, 256):
            netindex[j] = MAX_NET_POS


__all__ = ["NeuQuant", "NETSIZE", "MIN_SAMPLE_INTERVAL", "MAX_SAMPLE_INTERVAL"]
