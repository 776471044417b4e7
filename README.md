# snlds

Tools for working with switching non-linear dynamical systems (SNLDS), built
on NumPy:

- a seeded simulator (`snlds.generate`) that produces sequences with a
  discrete Markov state, a continuous latent trajectory and observations,
  either from a leaky-ReLU emission network or as rendered RGB frames of a
  2-D latent "ball" (`snlds.render`),
- a SafeTensors writer and reader and a JSON manifest for the generated data
  (`snlds.io`),
- the `snlds-gen` command that ties the two together (`snlds.cli`),
- log-domain HMM forward and backward passes (`snlds.hmm`),
- a label-matched accuracy score for inferred discrete states
  (`snlds.accuracy`).

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Generating a dataset from the command line

`snlds-gen` simulates train, test and eval splits and writes
`sequences.safetensors` and `metadata.json` into the output directory.

```
snlds-gen --seed 42 --dim-obs 2 --dim-latent 2 --num-states 3 \
          --seq-length 32 --num-samples 16 --data-type cosine --out ./out/run1
```

Polynomial dynamics instead of cosine dynamics:

```
snlds-gen --data-type poly --degree 3 --out ./out/poly
```

Image observations: each 2-D latent is rendered as a `res × res × 3` frame and
stored flattened. `--dim-obs` is then replaced by `3 * res * res` and
`--dim-latent` by 2; `--res` is rejected without `--observation image`.

```
snlds-gen --observation image --res 32 --seq-length 64 --num-samples 256 --out ./out/ball
```

Sharded output is written to `<out>/shard_000/`, `<out>/shard_001/`, … Train
sequences are divided evenly, with any remainder going one each to the first
shards; the whole test split and the whole eval split live in `shard_000/`.
Shard `i` is seeded with `seed + i`, and each shard's manifest records that
shard's own train and eval counts.

```
snlds-gen --num-samples 5000 --num-shards 4 --eval-fraction 0.1 --out ./out/sharded
```

| option            | default           |
|-------------------|-------------------|
| `--seed`          | 24                |
| `--dim-obs`       | 2                 |
| `--dim-latent`    | 2                 |
| `--num-states`    | 3                 |
| `--seq-length`    | 200               |
| `--num-samples`   | 5000              |
| `--sparsity-prob` | 0.0               |
| `--data-type`     | `cosine` (or `poly`) |
| `--degree`        | 3                 |
| `--observation`   | `vector` (or `image`) |
| `--res`           | none (image only) |
| `--num-shards`    | 1                 |
| `--eval-fraction` | 0.0               |
| `--out`, `-o`     | `./snlds-gen-out` |

`--version` prints the version. Progress messages go to standard error. An
invalid setting prints `error: …` and the command exits with status 1.

The test split holds `max(1, num_samples // 10)` sequences and the eval split
`num_samples * eval_fraction` rounded to the nearest integer. The eval
tensors are always written, with zero rows when there is no eval split.

## Using the library

```python
from snlds.generate import GenConfig, SimulatorKind, generate_train_test
from snlds.io import Manifest, MANIFEST_SCHEMA_VERSION, save_train_test, load_manifest

cfg = GenConfig(seed=7, seq_length=50, num_samples=100, kind=SimulatorKind.POLY)
tt = generate_train_test(cfg)
print(tt.latents_train.shape, tt.obs_train.shape, tt.states_train.shape)
print(tt.q_true)   # ground-truth transition matrix [K, K]
print(tt.pi_true)  # ground-truth initial distribution [K]
```

`GenConfig` also carries the simulator's noise settings (`init_noise_std`,
`init_mean_std`, `transition_step_var`), `emission_hidden_dim`, an optional
`initial_distribution`, `observation` (`VectorObservation()` or
`ImageObservation(res=...)`), `transition` and `eval_fraction`.
`generate_shard(cfg, shard_idx, num_shards)` produces a single shard.

Generation is deterministic for a given seed, and adding an eval split does
not change the train and test data drawn for that seed. Invalid settings (zero
states, a malformed transition matrix or initial distribution, an
`eval_fraction` outside `[0, 1]`, image observations with the wrong
dimensions, …) raise `ValueError`.

Transition topologies are `CyclicTransition(self_prob=0.9)` (the remainder
goes to the next state, wrapping round) and `ProvidedTransition(matrix)` (an
explicit row-stochastic matrix) from `snlds.transitions`; `get_trans_mat`
builds and validates the matrix.

### Files on disk

`save_train_test(out_dir, tt, manifest)` writes `sequences.safetensors`
(float32 `latents_*`, `obs_*`, `q_true`, `pi_true`; int32 `states_*`) and
`metadata.json`. `load_manifest` reads the manifest back; manifests from
older schema versions get default values for the fields they lack.
`load_tensor_f32` and `load_tensor_i32` load one tensor and raise
`ValueError` for a different dtype. `read_safetensors`, `encode_safetensors`
and `decode_safetensors` handle whole SafeTensors files or byte strings.

### HMM inference

```python
import numpy as np
from snlds.hmm import log_forward, log_backward

k = 3
evidence = np.zeros((2, 10, k))              # [N, T, K] log local evidence
log_pi = np.full(k, -np.log(k))
log_trans = np.full((k, k), -np.log(k))
log_alpha, log_z = log_forward(evidence, log_pi, log_trans)
log_beta = log_backward(evidence, log_trans, log_z)
posterior = np.exp(log_alpha + log_beta)     # rows sum to 1
```

### Scoring inferred states

Inferred discrete labels have no fixed correspondence with the true labels.
`align_with_hungarian` tries every relabelling (up to
`MAX_BRUTE_FORCE_STATES = 10` states) and returns an `AccuracyReport` with the
best permutation, the accuracy, the permuted confusion matrix and the counts.
`format_report` renders it as text and `print_report` prints it.

```python
import numpy as np
from snlds.accuracy import align_with_hungarian, print_report

truth = np.array([[0, 0, 1, 1, 2, 2]])
inferred = np.array([[2, 2, 0, 0, 1, 1]])
report = align_with_hungarian(truth, inferred, 3)
print_report(report)   # Matched accuracy: 1.0000 (6/6 timesteps) ...
```

## What this package does not do

There is no SNLDS model, no training loop and no command that loads a trained
model to infer states. The HMM passes and the accuracy score work on arrays
you supply. There is no plotting or interactive visualisation either; image
observations are only produced as arrays.