API_GROUP = "primer.gitops.io"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"
EXTRACT_KIND = "Extract"
EXTRACT_PLURAL = "extracts"

FIELD_MANAGER = "gitops-primer"
OPERATOR_NAME = "gitops-primer"

# Dependents are named "<prefix><extract name>"
DEPENDENT_PREFIX = "primer-extract-"

# Label keys
LABEL_MANAGED_BY = f"{API_GROUP}/managed-by"
LABEL_OWNER_NAME = f"{API_GROUP}/owner-name"
LABEL_OWNER_UID = f"{API_GROUP}/owner-uid"
LABEL_COMPONENT = f"{API_GROUP}/component"
COMPONENT_EXTRACT = "extract"

# Condition types and reasons
COND_RECONCILED = "Reconciled"
REASON_RECONCILE_COMPLETE = "ReconcileComplete"
REASON_RECONCILE_ERROR = "ReconcileError"
MESSAGE_RECONCILE_COMPLETE = "Reconcile complete"

# Dependent kinds
KIND_SERVICE_ACCOUNT = "ServiceAccount"
KIND_ROLE = "Role"
KIND_ROLE_BINDING = "RoleBinding"
KIND_JOB = "Job"

# Extraction workload
EXTRACT_IMAGE_DEFAULT = "quay.io/octo-emerging/gitops-primer-extract:latest"
EXTRACT_COMMAND = ["/bin/sh", "-c", "/committer.sh"]
SECRET_MODE = 0o600

# Environment variables
EXTRACT_IMAGE_ENV = "PRIMER_EXTRACT_IMAGE"
REQUEUE_DELAY_ENV = "PRIMER_REQUEUE_DELAY"
RESYNC_INTERVAL_ENV = "PRIMER_RESYNC_INTERVAL"
METRICS_PORT_ENV = "PRIMER_METRICS_PORT"
MAX_WORKERS_ENV = "PRIMER_MAX_WORKERS"
REQUEST_TIMEOUT_ENV = "PRIMER_REQUEST_TIMEOUT"
