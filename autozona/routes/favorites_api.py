from flask import Blueprint, request
from flask_jwt_extended import jwt_required, current_user
from ..services import favorites_manager
from ..utils.errors import ErrorKind, InvalidArgumentError, NotFoundError, error_from_outcome
from ..utils.logger import get_logger, log_requests
from ..utils.Response import ApiResponse

favorites_bp = Blueprint('favorites_api', __name__)

def _raise_for(outcome, not_found_message="收藏夹不存在"):
    """别人的收藏夹对外一律表现为不存在"""
    if outcome.kind is ErrorKind.ACCESS_DENIED:
        raise NotFoundError(not_found_message)
    raise error_from_outcome(outcome)

def _membership_args():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgumentError("请求体不能为空")
    return data.get('list_id'), data.get('listing_id')

@favorites_bp.route('/lists', methods=['GET'])
@jwt_required()
@log_requests()
def get_lists():
    """当前用户的全部收藏夹"""
    manager = favorites_manager()
    lists = manager.get_user_lists(current_user.id)
    return ApiResponse.success("获取收藏夹成功", data={
        "lists": [favorite_list.to_dict() for favorite_list in lists],
        "total_favorites": manager.total_favorites_for_user(current_user.id),
    }).to_json_response()

@favorites_bp.route('/lists', methods=['POST'])
@jwt_required()
@log_requests()
def create_list():
    """新建收藏夹"""
    data = request.get_json(silent=True) or {}
    favorite_list = favorites_manager().create_list(data.get('name'), data.get('description'), current_user.id)
    return ApiResponse.created("收藏夹创建成功", data=favorite_list.to_dict()).to_json_response()

@favorites_bp.route('/lists/<list_id>', methods=['GET'])
@jwt_required()
@log_requests()
def get_list(list_id):
    """收藏夹详情及其中的在售车源"""
    manager = favorites_manager()
    favorite_list = manager.get_list(list_id, current_user.id)
    if favorite_list is None:
        raise NotFoundError("收藏夹不存在")

    data = favorite_list.to_dict()
    data["listings"] = [listing.to_dict(include_images=True)
                        for listing in manager.get_list_listings(list_id, current_user.id)]
    return ApiResponse.success("获取收藏夹成功", data=data).to_json_response()

@favorites_bp.route('/lists/<list_id>', methods=['PUT'])
@jwt_required()
@log_requests()
def update_list(list_id):
    """修改收藏夹名称和描述"""
    data = request.get_json(silent=True) or {}
    favorite_list = favorites_manager().update_list(list_id, data.get('name'), data.get('description'),
                                                    current_user.id)
    return ApiResponse.success("收藏夹已更新", data=favorite_list.to_dict()).to_json_response()

@favorites_bp.route('/lists/<list_id>', methods=['DELETE'])
@jwt_required()
@log_requests()
def delete_list(list_id):
    """删除收藏夹"""
    outcome = favorites_manager().try_delete_list(list_id, current_user.id)
    if not outcome:
        _raise_for(outcome)
    return ApiResponse.success("收藏夹已删除", data={"list_id": list_id}).to_json_response()

@favorites_bp.route('/add', methods=['POST'])
@jwt_required()
@log_requests()
def add_favorite():
    """收藏车源，请求体: {"list_id": ..., "listing_id": ...}"""
    logger = get_logger(__name__)
    list_id, listing_id = _membership_args()

    manager = favorites_manager()
    outcome = manager.try_add_item(list_id, listing_id, current_user.id)
    if not outcome:
        _raise_for(outcome)

    logger.info(f"用户 {current_user.id} 收藏车源 {listing_id}")
    return ApiResponse.success("收藏成功", data={
        "item": outcome.value.to_dict(),
        "count": manager.count_in_list(list_id, current_user.id),
    }).to_json_response()

@favorites_bp.route('/remove', methods=['POST'])
@jwt_required()
@log_requests()
def remove_favorite():
    """取消收藏，请求体: {"list_id": ..., "listing_id": ...}"""
    list_id, listing_id = _membership_args()

    manager = favorites_manager()
    outcome = manager.try_remove_item(list_id, listing_id, current_user.id)
    if not outcome:
        _raise_for(outcome, "收藏记录不存在")

    return ApiResponse.success("已取消收藏", data={
        "count": manager.count_in_list(list_id, current_user.id),
    }).to_json_response()

@favorites_bp.route('/check/<listing_id>', methods=['GET'])
@jwt_required()
def check_favorite(listing_id):
    """车源是否已被当前用户收藏，以及所在的收藏夹"""
    manager = favorites_manager()
    lists = manager.lists_containing(listing_id, current_user.id)
    return ApiResponse.success("查询成功", data={
        "in_favorites": manager.is_in_favorites(listing_id, current_user.id),
        "lists": [{"list_id": favorite_list.id, "name": favorite_list.name} for favorite_list in lists],
    }).to_json_response()

@favorites_bp.route('/default', methods=['POST'])
@jwt_required()
@log_requests()
def default_list():
    """获取默认收藏夹，不存在时创建"""
    favorite_list = favorites_manager().get_or_create_default(current_user.id)
    return ApiResponse.success("获取默认收藏夹成功", data=favorite_list.to_dict()).to_json_response()
