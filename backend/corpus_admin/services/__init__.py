from corpus_admin.services.security_tracker import SecurityTracker, security_tracker
from corpus_admin.services.dataset_transform import transform_dataset, transform_datasets
