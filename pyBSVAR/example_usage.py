"""
pyBSVAR usage example
=====================

This script shows the main features of the pyBSVAR package.
"""

import numpy as np
import pandas as pd
from pyBSVAR import (BSVAR, RestrictionSet, CancellationToken, run_sampler, specify_prior,
                     specify_starting_values, normalise_posterior, build_data_matrices,
                     log_sddr_homoskedasticity)
from pyBSVAR.plot import plot_trace, plot_posterior

# =============================================================================
# Example 1: Data
# =============================================================================

print("=" * 80)
print("Example 1: Data")
print("=" * 80)

# Simulate a recursive SVAR(1) with constant
rng = np.random.default_rng(42)
T = 300
A_true = np.array([[0.5, 0.1, 0.2],
                   [0.0, 0.4, -0.1]])
B_true = np.array([[1.0, 0.0],
                   [-0.5, 1.0]])
B_inv = np.linalg.inv(B_true)

y = np.zeros((T + 1, 2))
for t in range(1, T + 1):
    y[t] = A_true @ np.concatenate([y[t - 1], [1.0]]) + B_inv @ rng.standard_normal(2)
data = pd.DataFrame(y[1:], columns=['output', 'prices'])

print(f"Number of variables: {data.shape[1]}")
print(f"Number of observations: {data.shape[0]}")
print(data.head())

# =============================================================================
# Example 2: Estimation with the default recursive restrictions
# =============================================================================

print("\n" + "=" * 80)
print("Example 2: BSVAR estimation")
print("=" * 80)

model = BSVAR(
    data=data,
    p=1,                # number of lags
    draws=2000,         # posterior draws
    stationary=True,    # zero prior mean on own first lags
    seed=123,
    verbose=True
)

print(model)
print("\nPosterior median of A:")
print(model.coef())
print("\nPosterior median of B:")
print(model.structural())
print("\nPosterior median of the reduced-form covariance:")
print(model.vcov())

summary = model.summary()
print(summary['posterior'].head(10))

# =============================================================================
# Example 3: Testing for a diagonal B
# =============================================================================

print("\n" + "=" * 80)
print("Example 3: Savage-Dickey density ratio")
print("=" * 80)

log_bf = model.log_sddr()
print(f"Log Bayes factor in favour of a diagonal B: {log_bf:.3f}")
if log_bf < 0:
    print("The data support contemporaneous relationships between the shocks.")

# =============================================================================
# Example 4: Custom restrictions and continuing the chain
# =============================================================================

print("\n" + "=" * 80)
print("Example 4: Custom restrictions")
print("=" * 80)

# Free entries of B: prices do not enter the output equation
mask = np.array([[True, False],
                 [True, True]])
model2 = BSVAR(data, p=2, draws=500, restrictions=mask,
               prior={'hyper_nu': 5.0}, seed=7, verbose=False)
print(model2.restrictions)

# Continue from the last draw; the stored draws are replaced
model2.continue_sampling(1000)
print(f"Draws after continuing: {model2.args['draws_completed']}")

# =============================================================================
# Example 5: Low-level sampler interface
# =============================================================================

print("\n" + "=" * 80)
print("Example 5: Low-level interface")
print("=" * 80)

Y, X = build_data_matrices(data, p=1)
N, K = Y.shape[0], X.shape[0]
prior = specify_prior(N, p=1, d=K - N, stationary=True)
VB = RestrictionSet.lower_triangular(N)
token = CancellationToken()


def progress(s, S):
    if s % 500 == 0:
        print(f"  {s}/{S}")


out = run_sampler(1500, Y, X, prior, VB, specify_starting_values(N, K),
                  seed=rng, cancel_token=token, progress=progress)
posterior = normalise_posterior(out['posterior'])
print(f"Completed draws: {out['draws']}, cancelled: {out['cancelled']}")
print("Posterior mean of B:")
print(posterior['B'].mean(axis=2).round(3))
print(f"Log SDDR: {log_sddr_homoskedasticity(posterior, prior, Y, X, VB=VB):.3f}")

# =============================================================================
# Example 6: Plots
# =============================================================================

fig = plot_trace(posterior, parameter='hyper')
fig.savefig('trace_hyper.png', dpi=100)

fig = plot_posterior(posterior, parameter='B')
fig.savefig('posterior_B.png', dpi=100)

print("\nSaved trace_hyper.png and posterior_B.png")
