#mnist_reader.py
"""
Reader for the MNIST archive: gzipped IDX files of 28x28 grey-scale digits and their labels.

Images file                                 Labels file
[offset] [type]          [value]            [offset] [type]          [value]
0000     32 bit integer  0x00000803 (2051)  0000     32 bit integer  0x00000801 (2049)
0004     32 bit integer  number of images   0004     32 bit integer  number of labels
0008     32 bit integer  number of rows     0008     unsigned byte   label
0012     32 bit integer  number of columns  ........
0016     unsigned byte   pixel
........
All integers are big-endian (MSB first).
"""

import gzip
import os
import numpy as np
from errors import MissingResource

IMAGES_MAGIC = 2051
LABELS_MAGIC = 2049

TRAIN_IMAGES_FILE = 'train-images-idx3-ubyte.gz'
TRAIN_LABELS_FILE = 'train-labels-idx1-ubyte.gz'
TEST_IMAGES_FILE = 't10k-images-idx3-ubyte.gz'
TEST_LABELS_FILE = 't10k-labels-idx1-ubyte.gz'

class MNISTItem:
    """One labelled image. Pixels are stored row after row as unsigned bytes."""
    def __init__(self, pixels: np.ndarray, label: int, width: int, height: int) -> None:
        self.pixels = np.asarray(pixels, dtype=np.uint8).reshape(-1).copy()
        self.label = int(label)
        self.width = width
        self.height = height
        if self.pixels.size != width * height:
            raise ValueError(f"Image error: {self.pixels.size} pixels don't fit a {width}x{height} image.")

    def size(self) -> int:
        return self.pixels.size

    def double_pixels(self) -> np.ndarray:
        return self.pixels.astype(np.float64)

    def __repr__(self) -> str:
        return f'MNISTItem(label={self.label}, {self.width}x{self.height})'

def _read_header(stream, count: int) -> [int]:
    return [int(v) for v in np.frombuffer(stream.read(4 * count), dtype='>i4')]

def read_data(images_file: str, labels_file: str) -> [MNISTItem]:
    """Decode a pair of gzipped IDX files into a list of MNISTItems."""
    with gzip.open(images_file, 'rb') as images:
        magic, num_images, rows, cols = _read_header(images, 4)
        if magic != IMAGES_MAGIC:
            raise ValueError(f"'{images_file}' is not an IDX images file: magic number {magic}, expected {IMAGES_MAGIC}.")
        pixels = np.frombuffer(images.read(num_images * rows * cols), dtype=np.uint8)

    with gzip.open(labels_file, 'rb') as labels_stream:
        magic, num_labels = _read_header(labels_stream, 2)
        if magic != LABELS_MAGIC:
            raise ValueError(f"'{labels_file}' is not an IDX labels file: magic number {magic}, expected {LABELS_MAGIC}.")
        labels = np.frombuffer(labels_stream.read(num_labels), dtype=np.uint8)

    if num_images != num_labels:
        raise ValueError(f"{num_images} images but {num_labels} labels.")
    if pixels.size != num_images * rows * cols or labels.size != num_labels:
        raise ValueError(f"Truncated MNIST files: '{images_file}', '{labels_file}'.")

    pixels = pixels.reshape(num_images, rows * cols)
    return [MNISTItem(pixels[i], labels[i], cols, rows) for i in range(num_images)]

class MNISTReader:
    """
    Reads the training and the test set from a directory holding the four MNIST archive files.
    """
    def __init__(self, directory: str = 'mnist') -> None:
        if not os.path.isdir(directory):
            raise MissingResource(f"The directory '{directory}' cannot be found.")
        self.directory = directory

    def _read(self, images_name: str, labels_name: str, description: str) -> [MNISTItem]:
        images_file = os.path.join(self.directory, images_name)
        labels_file = os.path.join(self.directory, labels_name)
        for f in (images_file, labels_file):
            if not os.path.isfile(f):
                raise MissingResource(f"File '{f}' not found.")
        items = read_data(images_file, labels_file)
        print(f'Successfully read {len(items)} labelled images from the {description}')
        return items

    def read_train_set(self) -> [MNISTItem]:
        return self._read(TRAIN_IMAGES_FILE, TRAIN_LABELS_FILE, 'training set')

    def read_test_set(self) -> [MNISTItem]:
        return self._read(TEST_IMAGES_FILE, TEST_LABELS_FILE, 'test set')

def from_torchvision(root: str = './data', train: bool = True, download: bool = True) -> [MNISTItem]:
    """
    Get the items through torchvision instead of a local copy of the archive.
    """
    from torchvision.datasets import MNIST

    dataset = MNIST(root=root, train=train, download=download)
    images = dataset.data.numpy()
    targets = dataset.targets.numpy()
    height, width = images.shape[1:]
    items = [MNISTItem(images[i], targets[i], width, height) for i in range(len(targets))]
    print(f'Successfully read {len(items)} labelled images from the torchvision {"training" if train else "test"} set')
    return items
