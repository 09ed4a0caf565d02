from .idx_mnist import IdxMnistDatasetProvider
from .npz_classification import NpzClassificationDatasetProvider

__all__ = [
	"IdxMnistDatasetProvider",
	"NpzClassificationDatasetProvider",
]
