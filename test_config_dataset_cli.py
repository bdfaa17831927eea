"""
Tests for configuration, embedding files and the command-line tools.

This verifies:
1. YAML configuration loading and validation
2. EmbeddingDataset on .npy, .npz and raw float32 files
3. compress_file/decompress_file through the codec and the CLIs
"""

from pathlib import Path

import numpy as np
import pytest
import torch
import yaml

from bin import compress, decompress
from ovc.core import (
    CompressedVector,
    CompressionConfig,
    CompressionMethod,
    CompressionStrategy,
    ErrorKind,
    VectorCodec,
    iter_envelopes,
)
from ovc.io import EmbeddingDataset
from ovc.utils.metrics import (
    cosine_similarity,
    energy_retained,
    evaluate_compression_performance,
)

CONFIG_PATH = Path(__file__).parent / "configs" / "default.yaml"


def embedding_matrix(num_vectors=20, dim=96, seed=0):
    rng = np.random.default_rng(seed)
    return np.cumsum(rng.normal(size=(num_vectors, dim)), axis=1).astype(np.float32)


# -----------------------------------------------------------
# Configuration
# -----------------------------------------------------------
def test_default_yaml_config():
    config = CompressionConfig.from_yaml(CONFIG_PATH)

    assert config.target_dimension == 128
    assert config.energy_threshold == 0.95
    assert config.default_method == CompressionMethod.DCT
    assert config.fft_strategy == CompressionStrategy.HIGHEST_MAGNITUDE
    assert config.quantization_bits == 8
    assert config.max_workers == 4


def test_config_round_trip(tmp_path):
    config = CompressionConfig(
        target_dimension=0,
        default_method='adaptive',
        fft_strategy='low_frequency',
        quantization_bits=16,
    )
    path = tmp_path / "codec.yaml"
    path.write_text(yaml.safe_dump(config.to_dict()))

    assert CompressionConfig.from_yaml(path) == config
    assert config.fft_target_dimension == 128


def test_flat_config_dict():
    config = CompressionConfig.from_dict({'target_dimension': 32, 'max_workers': 2})

    assert config.target_dimension == 32
    assert config.fft_target_dimension == 32
    assert config.max_workers == 2


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert CompressionConfig.from_yaml(path) == CompressionConfig()


@pytest.mark.parametrize("overrides", [
    {'target_dimension': -1},
    {'energy_threshold': 0.0},
    {'energy_threshold': 1.01},
    {'quantization_bits': 12},
    {'max_workers': 0},
    {'default_method': 'wavelet'},
    {'fft_strategy': 'loudest'},
    {'compression': {'keep': 3}},
])
def test_invalid_config(overrides):
    with pytest.raises(ValueError):
        CompressionConfig.from_dict(overrides)


# -----------------------------------------------------------
# Embedding files
# -----------------------------------------------------------
def test_dataset_npy(tmp_path):
    matrix = embedding_matrix()
    np.save(tmp_path / "vectors.npy", matrix)

    dataset = EmbeddingDataset(tmp_path / "vectors.npy", max_vectors=5)

    assert len(dataset) == 5
    assert dataset.dimension == 96
    assert dataset.total_bytes == 5 * 96 * 4
    assert dataset[0].dtype == torch.float32
    np.testing.assert_array_equal(dataset[4].numpy(), matrix[4])

    with pytest.raises(IndexError):
        dataset[5]


def test_dataset_single_vector(tmp_path):
    np.save(tmp_path / "one.npy", np.arange(8, dtype=np.float32))

    dataset = EmbeddingDataset(tmp_path / "one.npy")

    assert len(dataset) == 1
    assert dataset.get_matrix().shape == (1, 8)


def test_dataset_npz(tmp_path):
    matrix = embedding_matrix()
    np.savez(tmp_path / "archive.npz", ids=np.arange(3), embeddings=matrix)

    dataset = EmbeddingDataset(tmp_path / "archive.npz", key="embeddings")
    assert len(dataset) == 20

    with pytest.raises(ValueError):
        EmbeddingDataset(tmp_path / "archive.npz", key="missing")


def test_dataset_raw_float32(tmp_path):
    matrix = embedding_matrix(num_vectors=4, dim=16)
    matrix.astype('<f4').tofile(tmp_path / "vectors.f32")

    dataset = EmbeddingDataset(tmp_path / "vectors.f32", dimension=16)
    np.testing.assert_array_equal(dataset.get_matrix(), matrix)

    with pytest.raises(ValueError):
        EmbeddingDataset(tmp_path / "vectors.f32")
    with pytest.raises(ValueError):
        EmbeddingDataset(tmp_path / "vectors.f32", dimension=5)


def test_dataset_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        EmbeddingDataset(tmp_path / "missing.npy")

    np.save(tmp_path / "cube.npy", np.zeros((2, 2, 2), dtype=np.float32))
    with pytest.raises(ValueError):
        EmbeddingDataset(tmp_path / "cube.npy")

    np.save(tmp_path / "vectors.npy", embedding_matrix())
    with pytest.raises(ValueError):
        EmbeddingDataset(tmp_path / "vectors.npy", dimension=32)


# -----------------------------------------------------------
# File compression
# -----------------------------------------------------------
def test_compress_file_round_trip(tmp_path):
    matrix = embedding_matrix()
    np.save(tmp_path / "vectors.npy", matrix)
    codec = VectorCodec(CompressionConfig(target_dimension=32))

    stats = codec.compress_file(tmp_path / "vectors.npy", tmp_path / "vectors.ovc",
                                batch_size=6).unwrap()

    assert stats['vectors'] == 20
    assert stats['dimension'] == 96
    assert stats['original_size'] == matrix.nbytes
    assert stats['compressed_size'] == (tmp_path / "vectors.ovc").stat().st_size
    assert stats['method_breakdown'] == {'DCT': 20}
    assert stats['stats'].vectors_compressed == 20

    restored = codec.decompress_file(tmp_path / "vectors.ovc", tmp_path / "restored.npy").unwrap()

    assert restored['num_vectors'] == 20
    assert restored['vectors'].shape == matrix.shape
    np.testing.assert_array_equal(np.load(tmp_path / "restored.npy"), restored['vectors'])
    for original, approx in zip(matrix, restored['vectors']):
        assert cosine_similarity(original, approx) > 0.9


def test_compress_file_shares_highest_variance_bins(tmp_path):
    np.save(tmp_path / "vectors.npy", embedding_matrix(num_vectors=12, dim=64))
    codec = VectorCodec(CompressionConfig(target_dimension=8, fft_strategy='highest_variance'))

    codec.compress_file(tmp_path / "vectors.npy", tmp_path / "vectors.ovc",
                        method=CompressionMethod.FFT, batch_size=4).unwrap()

    data = (tmp_path / "vectors.ovc").read_bytes()
    bins = [CompressedVector.from_bytes(payload).indices.tolist()
            for _, payload in iter_envelopes(data)]

    assert len(bins) == 12
    assert all(b == bins[0] for b in bins)


def test_compress_file_adaptive_learns_bins_once(tmp_path):
    rng = np.random.default_rng(7)
    t = np.arange(64)
    rows = []
    for i in range(12):
        if i % 2 == 0:
            amplitude = 1.0 + 0.5 * i
            rows.append(amplitude * np.sin(2 * np.pi * 4 * t / 64) + 0.01 * rng.normal(size=64))
        else:
            rows.append(rng.normal(size=64))
    np.save(tmp_path / "vectors.npy", np.array(rows, dtype=np.float32))
    codec = VectorCodec(CompressionConfig(target_dimension=8, fft_strategy='highest_variance'))

    codec.compress_file(tmp_path / "vectors.npy", tmp_path / "vectors.ovc",
                        method=CompressionMethod.ADAPTIVE, batch_size=4).unwrap()

    envelopes = list(iter_envelopes((tmp_path / "vectors.ovc").read_bytes()))
    methods = [method for method, _ in envelopes]
    bins = [CompressedVector.from_bytes(payload).indices.tolist()
            for method, payload in envelopes if method == CompressionMethod.FFT]

    assert methods == [CompressionMethod.FFT, CompressionMethod.DCT] * 6
    assert all(b == bins[0] for b in bins)


def test_file_errors_are_results(tmp_path):
    codec = VectorCodec()

    missing = codec.compress_file(tmp_path / "missing.npy", tmp_path / "out.ovc")
    assert missing.is_failure
    assert missing.error.kind == ErrorKind.INVALID_INPUT

    (tmp_path / "garbage.ovc").write_bytes(b'not an envelope')
    garbage = codec.decompress_file(tmp_path / "garbage.ovc")
    assert garbage.error.kind == ErrorKind.INVALID_FORMAT


def test_decompress_file_rejects_mixed_dimensions(tmp_path):
    codec = VectorCodec()
    first, _ = codec.compress(np.ones(16)).unwrap()
    second, _ = codec.compress(np.ones(32)).unwrap()
    (tmp_path / "mixed.ovc").write_bytes(first + second)

    result = codec.decompress_file(tmp_path / "mixed.ovc")

    assert result.error.kind == ErrorKind.DIMENSION_MISMATCH


def test_evaluate_compression_performance():
    codec = VectorCodec(CompressionConfig(target_dimension=16))
    vector = embedding_matrix(num_vectors=1)[0]
    data, _ = codec.compress(vector).unwrap()

    metrics = evaluate_compression_performance(vector, data, codec.decompress(data).unwrap())

    assert metrics['original_size_bytes'] == 96 * 4
    assert metrics['compressed_size_bytes'] == len(data)
    assert metrics['compression_factor'] == pytest.approx(384 / len(data))
    assert metrics['percent_savings'] > 0
    assert metrics['cosine_similarity'] > 0.9
    assert 0.8 < metrics['energy_retained'] <= 1.0 + 1e-6


def test_energy_retained():
    assert energy_retained([3.0, 4.0], [3.0, 0.0]) == pytest.approx(9 / 25)
    assert energy_retained([3.0, 4.0], [3.0, 4.0]) == pytest.approx(1.0)
    assert energy_retained(np.zeros(4), np.ones(4)) == 1.0


# -----------------------------------------------------------
# Command line
# -----------------------------------------------------------
def test_cli_round_trip(tmp_path, capsys):
    matrix = embedding_matrix()
    np.save(tmp_path / "vectors.npy", matrix)

    compress.main([
        str(tmp_path / "vectors.npy"),
        "-o", str(tmp_path / "vectors.ovc"),
        "--config", str(CONFIG_PATH),
        "--method", "quantized_dct",
        "--target-dimension", "48",
        "--bits", "16",
        "--workers", "2",
    ])
    decompress.main([str(tmp_path / "vectors.ovc"), "-o", str(tmp_path / "restored.npy")])

    output = capsys.readouterr().out
    assert "Compression Complete" in output
    assert "Decompression Complete" in output

    restored = np.load(tmp_path / "restored.npy")
    assert restored.shape == matrix.shape
    assert cosine_similarity(matrix[0], restored[0]) > 0.9


def test_cli_overrides_config():
    class Args:
        config = str(CONFIG_PATH)
        target_dimension = 0
        energy_threshold = 0.9
        strategy = 'adaptive'
        bits = None
        workers = None

    config = compress.build_config(Args())

    assert config.target_dimension == 0
    assert config.energy_threshold == 0.9
    assert config.fft_strategy == CompressionStrategy.ADAPTIVE
    assert config.quantization_bits == 8
    assert config.max_workers == 4


def test_cli_missing_input(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        compress.main([str(tmp_path / "missing.npy"), "-o", str(tmp_path / "out.ovc")])
    assert excinfo.value.code == 1

    with pytest.raises(SystemExit) as excinfo:
        decompress.main([str(tmp_path / "missing.ovc"), "-o", str(tmp_path / "out.npy")])
    assert excinfo.value.code == 1


def test_cli_invalid_method(tmp_path):
    np.save(tmp_path / "vectors.npy", embedding_matrix())

    with pytest.raises(SystemExit) as excinfo:
        compress.main([str(tmp_path / "vectors.npy"), "-o", str(tmp_path / "out.ovc"),
                       "--method", "wavelet"])
    assert excinfo.value.code == 1
