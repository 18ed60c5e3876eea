from .phase_10_prereq import PrereqPhase
from .phase_20_acquire import AcquirePhase
from .phase_30_extract_primary import ExtractPrimaryPhase
from .phase_40_secondary_runtime import InstallSecondaryRuntimePhase
from .phase_50_warm_caches import WarmCachesPhase
from .phase_60_post_process import PostProcessPhase
from .phase_70_extensions import InstallExtensionsPhase
from .phase_80_merge_config import MergeConfigPhase
from .phase_85_apply_environment import ApplyEnvironmentPhase
from .phase_90_verify import VerifyPhase

__all__ = [
    "PrereqPhase",
    "AcquirePhase",
    "ExtractPrimaryPhase",
    "InstallSecondaryRuntimePhase",
    "WarmCachesPhase",
    "PostProcessPhase",
    "InstallExtensionsPhase",
    "MergeConfigPhase",
    "ApplyEnvironmentPhase",
    "VerifyPhase",
]
