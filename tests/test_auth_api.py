import json
from flask_jwt_extended import create_access_token

# ================ 语句测试 ================

def test_register_success(client, app):
    """语句测试：用户注册成功"""
    test_data = {
        'username': 'newuser',
        'email': 'newuser@example.com',
        'first_name': 'New',
        'last_name': 'User',
        'city': 'Ohrid',
        'password': 'password123'
    }

    response = client.post('/api/auth/register', json=test_data)

    print(f"响应内容: {json.dumps(response.json, ensure_ascii=False, indent=2)}")
    assert response.status_code == 201
    data = response.json
    assert data['code'] == 201
    assert data['message'] == "用户注册成功"
    assert 'user_id' in data['data']

def test_login_success(client, seller):
    """语句测试：登录成功返回token和用户信息"""
    response = client.post('/api/auth/login', json={'username': 'seller', 'password': 'password123'})

    assert response.status_code == 200
    data = response.json['data']
    assert data['access_token']
    assert data['user']['user_id'] == seller
    assert data['user']['city'] == 'Skopje'

def test_token_from_login_is_accepted(client, seller):
    token = client.post('/api/auth/login',
                        json={'username': 'seller', 'password': 'password123'}).json['data']['access_token']

    response = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 200
    assert response.json['data']['username'] == 'seller'

# ================ 路径测试 ================

def test_register_empty_body(client):
    response = client.post('/api/auth/register', json={})
    assert response.status_code == 400
    assert response.json['message'] == "请求体不能为空"

def test_register_missing_fields(client):
    response = client.post('/api/auth/register', json={'username': 'someone', 'password': 'x'})
    assert response.status_code == 400
    assert 'city' in response.json['message']

def test_register_duplicate_username(client, seller):
    response = client.post('/api/auth/register', json={
        'username': 'seller', 'first_name': 'A', 'last_name': 'B', 'city': 'Skopje', 'password': 'p'
    })
    assert response.status_code == 409
    assert response.json['message'] == "用户名已被注册"

def test_register_duplicate_email(client, seller):
    response = client.post('/api/auth/register', json={
        'username': 'other', 'email': 'seller@example.com',
        'first_name': 'A', 'last_name': 'B', 'city': 'Skopje', 'password': 'p'
    })
    assert response.status_code == 409
    assert response.json['message'] == "邮箱已被注册"

def test_login_wrong_password(client, seller):
    response = client.post('/api/auth/login', json={'username': 'seller', 'password': 'wrong'})
    assert response.status_code == 401
    assert response.json['message'] == "用户名或密码错误"

def test_me_without_token(client):
    response = client.get('/api/auth/me')
    assert response.status_code == 401
    assert response.json['message'] == "缺少认证信息，请先登录"

def test_token_of_unknown_user_is_rejected(client, app):
    token = create_access_token(identity='no-such-user')
    response = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert response.status_code == 401
    assert response.json['message'] == "用户不存在，请重新登录"

def test_invalid_token(client):
    response = client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-token'})
    assert response.status_code == 401
    assert response.json['message'] == "Token无效，请重新登录"
