from .checkpoint_store import CheckpointStorePort
from .dataset_provider import DatasetProviderPort
from .metrics_sink import MetricsSinkPort
from .model_gateway import ModelGatewayPort

__all__ = [
	"CheckpointStorePort",
	"DatasetProviderPort",
	"MetricsSinkPort",
	"ModelGatewayPort",
]
