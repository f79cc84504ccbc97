from ..models.user import User, UserRole
from ..models.relationship import UserRelationship
from ..models.task import Task, UserTask, UserTaskStatus
from ..models.reward import Reward, UserReward, UserRewardStatus
from ..models.points import PointTransaction, TransactionType
from ..models.invite import InvitationCode, InvitationStatus
from ..db.base_class import Base
