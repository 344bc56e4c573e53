from flask import Blueprint, request
from flask_jwt_extended import jwt_required, current_user
from ..services import image_manager
from ..utils.errors import error_from_outcome
from ..utils.logger import log_requests
from ..utils.Response import ApiResponse

image_bp = Blueprint('image_api', __name__)

@image_bp.route('/<image_id>/primary', methods=['POST'])
@jwt_required()
@log_requests()
def set_primary_image(image_id):
    """设为封面(仅发布者)"""
    outcome = image_manager().try_set_primary(image_id, current_user.id)
    if not outcome:
        raise error_from_outcome(outcome)
    return ApiResponse.success("封面设置成功", data=outcome.value.to_dict()).to_json_response()

@image_bp.route('/<image_id>', methods=['PUT'])
@jwt_required()
@log_requests()
def update_image(image_id):
    """修改图片说明(仅发布者)"""
    data = request.get_json(silent=True) or {}
    image = image_manager().update_description(image_id, data.get('description'), current_user.id)
    return ApiResponse.success("图片说明已更新", data=image.to_dict()).to_json_response()

@image_bp.route('/<image_id>', methods=['DELETE'])
@jwt_required()
@log_requests()
def delete_image(image_id):
    """删除图片(仅发布者)"""
    outcome = image_manager().try_delete(image_id, current_user.id)
    if not outcome:
        raise error_from_outcome(outcome)
    return ApiResponse.success("图片已删除", data={"image_id": image_id}).to_json_response()
