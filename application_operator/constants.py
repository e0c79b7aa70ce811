"""
Shared module to hold constant values for the library
"""

# Application resource identifiers
APPLICATION_GROUP = "apps.aloys.cn"
APPLICATION_VERSION = "v1"
APPLICATION_API_VERSION = f"{APPLICATION_GROUP}/{APPLICATION_VERSION}"
APPLICATION_KIND = "Application"
APPLICATION_PLURAL = "applications"

# Child resource identifiers
DEPLOYMENT_API_VERSION = "apps/v1"
DEPLOYMENT_KIND = "Deployment"
SERVICE_API_VERSION = "v1"
SERVICE_KIND = "Service"

# Suffixes used to derive the child names from the parent name
DEPLOYMENT_NAME_SUFFIX = "-deployment"
SERVICE_NAME_SUFFIX = "-service"

# Keys of the Application spec and status sections
SPEC_DEPLOYMENT_KEY = "deployment"
SPEC_SERVICE_KEY = "service"
STATUS_WORKFLOW_KEY = "workflow"
STATUS_NETWORK_KEY = "network"

# Replica defaulting rules applied by the admission defaulter. Any supplied
# value strictly greater than the threshold is replaced by the max.
REPLICAS_CLAMP_THRESHOLD = 9
MAX_REPLICAS = 8

# Admission webhook paths
MUTATE_APPLICATION_PATH = "/mutate-apps-aloys-cn-v1-application"
VALIDATE_APPLICATION_PATH = "/validate-apps-aloys-cn-v1-application"

# AdmissionReview api version used when a request does not carry one
ADMISSION_REVIEW_API_VERSION = "admission.k8s.io/v1"

# Default namespace if none given
DEFAULT_NAMESPACE = "default"

# Delimiter used for nested dict keys
NESTED_DICT_DELIM = "."
