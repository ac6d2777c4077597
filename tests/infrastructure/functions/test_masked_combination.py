import unittest
import numpy as np

from src.ndgrad.infrastructure import functions as F
from src.ndgrad.infrastructure.autograd import Variable
from src.ndgrad.infrastructure.ndarray import NdArray


def one_hot_mask(indices: NdArray, num_options: int) -> NdArray:
    """(B, k) float indices -> (B, num_options) 0/1 mask."""
    idx = indices.to_numpy().astype(np.int64)
    mask = np.zeros((idx.shape[0], num_options), dtype=np.float32)
    mask[np.arange(idx.shape[0])[:, None], idx] = 1.0
    return NdArray(mask)


class TestTopKGatedCombination(unittest.TestCase):
    """
    A softmax gate picks the top-k options per row; the discrete choice is
    applied as a constant one-hot mask so the weighted sum stays
    differentiable with respect to both the gate and the options.
    """

    def setUp(self) -> None:
        rng = np.random.default_rng(5)
        self.B, self.D, self.H, self.E, self.k = 4, 3, 2, 3, 2
        self.x = Variable(rng.normal(size=(self.B, self.D)), requires_grad=False)
        self.w_gate = Variable(rng.normal(size=(self.D, self.E)))
        self.w_opts = [Variable(rng.normal(size=(self.D, self.H))) for _ in range(self.E)]

    def _combine(self):
        logits = self.x @ self.w_gate
        probs = F.softmax(logits, axis=-1)

        # routing decision on raw buffers
        _, indices = probs.data.top_k(self.k, axis=-1)
        mask = Variable(one_hot_mask(indices, self.E), requires_grad=False)
        weights = probs * mask

        out = None
        for e, w in enumerate(self.w_opts):
            term = F.get_item(weights, None, [e]) * (self.x @ w)
            out = term if out is None else out + term
        return logits, probs, mask, out

    def test_shapes_and_mask(self) -> None:
        _, probs, mask, out = self._combine()
        self.assertEqual(out.shape, (self.B, self.H))
        np.testing.assert_array_equal(mask.to_numpy().sum(axis=1), [self.k] * self.B)
        # the mask keeps the k largest probabilities in each row
        p = probs.to_numpy()
        m = mask.to_numpy()
        for row in range(self.B):
            self.assertGreaterEqual(p[row][m[row] == 1].min(), p[row][m[row] == 0].max())

    def test_gradients_reach_gate_and_selected_options(self) -> None:
        logits, probs, mask, out = self._combine()
        out.sum().backward()

        self.assertIsNotNone(self.w_gate.grad)
        self.assertGreater(np.abs(self.w_gate.grad.to_numpy()).sum(), 0.0)
        self.assertIsNone(self.x.grad)

        m = mask.to_numpy()
        for e, w in enumerate(self.w_opts):
            with self.subTest(option=e):
                if m[:, e].any():
                    self.assertGreater(np.abs(w.grad.to_numpy()).sum(), 0.0)
                else:
                    np.testing.assert_array_equal(w.grad.to_numpy(), 0.0)

    def test_gate_gradient_matches_closed_form(self) -> None:
        logits, probs, mask, out = self._combine()
        out.sum().backward()

        x = self.x.to_numpy().astype(np.float64)
        p = probs.to_numpy().astype(np.float64)
        m = mask.to_numpy().astype(np.float64)
        # dL/dp[b, e] = m[b, e] * sum_h (x @ W_e)[b, h]
        g = np.stack(
            [(x @ w.to_numpy().astype(np.float64)).sum(axis=1) for w in self.w_opts],
            axis=1,
        ) * m
        g_logits = p * (g - (g * p).sum(axis=1, keepdims=True))
        np.testing.assert_allclose(logits.grad.to_numpy(), g_logits, rtol=1e-4, atol=1e-5)
        np.testing.assert_allclose(self.w_gate.grad.to_numpy(), x.T @ g_logits, rtol=1e-4, atol=1e-5)


if __name__ == "__main__":
    unittest.main()
