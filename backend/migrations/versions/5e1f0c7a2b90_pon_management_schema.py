"""pon_management_schema

Revision ID: 5e1f0c7a2b90
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5e1f0c7a2b90'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'service_profiles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('download_speed', sa.Integer(), nullable=False),
        sa.Column('upload_speed', sa.Integer(), nullable=False),
        sa.Column('internet_vlan', sa.Integer(), nullable=True),
        sa.Column('iptv_vlan', sa.Integer(), nullable=True),
        sa.Column('voip_vlan', sa.Integer(), nullable=True),
        sa.Column('qos_priority', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'olts',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('vendor', sa.String(length=20), nullable=False),
        sa.Column('model', sa.String(length=64), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('telnet_port', sa.Integer(), nullable=True),
        sa.Column('username', sa.String(length=64), nullable=True),
        sa.Column('password', sa.String(length=128), nullable=True),
        sa.Column('snmp_community', sa.String(length=64), nullable=True),
        sa.Column('snmp_write_community', sa.String(length=64), nullable=True),
        sa.Column('snmp_port', sa.Integer(), nullable=True),
        sa.Column('acs_url', sa.String(length=255), nullable=True),
        sa.Column('acs_username', sa.String(length=64), nullable=True),
        sa.Column('acs_password', sa.String(length=128), nullable=True),
        sa.Column('inform_interval', sa.Integer(), nullable=True),
        sa.Column('auto_provision', sa.Boolean(), nullable=True),
        sa.Column('default_profile_id', sa.String(length=36), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('firmware_version', sa.String(length=64), nullable=True),
        sa.Column('uptime', sa.Integer(), nullable=True),
        sa.Column('cpu_usage', sa.Float(), nullable=True),
        sa.Column('memory_usage', sa.Float(), nullable=True),
        sa.Column('temperature', sa.Float(), nullable=True),
        sa.Column('active_onus', sa.Integer(), nullable=True),
        sa.Column('last_polled', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['default_profile_id'], ['service_profiles.id'], ),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'onus',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('olt_id', sa.String(length=36), nullable=False),
        sa.Column('serial_number', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=True),
        sa.Column('pon_port', sa.Integer(), nullable=True),
        sa.Column('onu_id', sa.Integer(), nullable=True),
        sa.Column('service_profile_id', sa.String(length=36), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('rx_power', sa.Float(), nullable=True),
        sa.Column('tx_power', sa.Float(), nullable=True),
        sa.Column('distance', sa.Integer(), nullable=True),
        sa.Column('last_seen', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['olt_id'], ['olts.id'], ),
        sa.ForeignKeyConstraint(['service_profile_id'], ['service_profiles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('olt_id', 'pon_port', 'onu_id', name='uq_onus_position')
    )
    op.create_index(op.f('ix_onus_olt_id'), 'onus', ['olt_id'], unique=False)
    op.create_index(op.f('ix_onus_serial_number'), 'onus', ['serial_number'], unique=True)

    op.create_table(
        'cwmp_devices',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('device_key', sa.String(length=200), nullable=False),
        sa.Column('oui', sa.String(length=16), nullable=True),
        sa.Column('product_class', sa.String(length=64), nullable=True),
        sa.Column('serial_number', sa.String(length=64), nullable=True),
        sa.Column('manufacturer', sa.String(length=120), nullable=True),
        sa.Column('model_name', sa.String(length=120), nullable=True),
        sa.Column('software_version', sa.String(length=64), nullable=True),
        sa.Column('hardware_version', sa.String(length=64), nullable=True),
        sa.Column('connection_request_url', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('is_online', sa.Boolean(), nullable=True),
        sa.Column('last_inform_time', sa.DateTime(), nullable=True),
        sa.Column('last_connection_time', sa.DateTime(), nullable=True),
        sa.Column('last_events', sa.JSON(), nullable=True),
        sa.Column('parameter_cache', sa.JSON(), nullable=True),
        sa.Column('onu_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['onu_id'], ['onus.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_cwmp_devices_device_key'), 'cwmp_devices', ['device_key'], unique=True)
    op.create_index(op.f('ix_cwmp_devices_serial_number'), 'cwmp_devices', ['serial_number'], unique=False)

    op.create_table(
        'cwmp_tasks',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('device_id', sa.String(length=36), nullable=False),
        sa.Column('task_type', sa.String(length=40), nullable=False),
        sa.Column('parameters', sa.JSON(), nullable=True),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('command_key', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('result', sa.JSON(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['device_id'], ['cwmp_devices.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_cwmp_tasks_device_id'), 'cwmp_tasks', ['device_id'], unique=False)
    op.create_index(op.f('ix_cwmp_tasks_command_key'), 'cwmp_tasks', ['command_key'], unique=True)
    op.create_index(op.f('ix_cwmp_tasks_status'), 'cwmp_tasks', ['status'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_cwmp_tasks_status'), table_name='cwmp_tasks')
    op.drop_index(op.f('ix_cwmp_tasks_command_key'), table_name='cwmp_tasks')
    op.drop_index(op.f('ix_cwmp_tasks_device_id'), table_name='cwmp_tasks')
    op.drop_table('cwmp_tasks')
    op.drop_index(op.f('ix_cwmp_devices_serial_number'), table_name='cwmp_devices')
    op.drop_index(op.f('ix_cwmp_devices_device_key'), table_name='cwmp_devices')
    op.drop_table('cwmp_devices')
    op.drop_index(op.f('ix_onus_serial_number'), table_name='onus')
    op.drop_index(op.f('ix_onus_olt_id'), table_name='onus')
    op.drop_table('onus')
    op.drop_table('olts')
    op.drop_table('service_profiles')
